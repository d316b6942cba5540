"""Downloads a page and extracts its readable body text."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from thnk.observability.metrics import metrics
from thnk.services.research.errors import FetchFailureError, InsufficientContentError
from thnk.services.research.liveness import BROWSER_HEADERS

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

CONTENT_SELECTORS: tuple[str, ...] = (
    "article p",
    "main p",
    "[role=main] p",
    ".article-body p",
    ".entry-content p",
    ".post-content p",
    ".content p",
    "#content p",
    "p",
)
BOILERPLATE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form")
TEXT_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")
RETRYABLE_STATUS = 403


@dataclass(frozen=True)
class FetchedPage:
    url: str
    title: str
    text: str
    status_code: int
    attempts: int
    selector: str


@dataclass(frozen=True)
class ExtractedText:
    text: str
    selector: str


def extract_readable_text(
    html: str,
    *,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    min_fragment_chars: int = 50,
) -> tuple[str, ExtractedText]:
    """Return the page title and the selector yielding the longest body text.

    Fragments shorter than ``min_fragment_chars`` are dropped as navigation noise.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    for element in soup.find_all(list(BOILERPLATE_TAGS)):
        element.decompose()

    best = ExtractedText(text="", selector="")
    for selector in selectors:
        fragments = [
            " ".join(node.get_text(" ", strip=True).split())
            for node in soup.select(selector)
        ]
        kept = [fragment for fragment in fragments if len(fragment) >= min_fragment_chars]
        combined = "\n\n".join(kept)
        if len(combined) > len(best.text):
            best = ExtractedText(text=combined, selector=selector)
    return title, best


class ContentFetcher:
    """GETs a live URL, retrying once on HTTP 403, and extracts readable text."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
        retries_on_403: int = 1,
        retry_delay_seconds: float = 1.0,
        max_chars: int = 8000,
        min_fragment_chars: int = 50,
        min_content_chars: int = 100,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if retries_on_403 < 0:
            raise ValueError("retries_on_403 must be >= 0")
        self._client = http_client
        self._timeout = httpx.Timeout(timeout_seconds)
        self._retries_on_403 = retries_on_403
        self._retry_delay = retry_delay_seconds
        self._max_chars = max_chars
        self._min_fragment_chars = min_fragment_chars
        self._min_content_chars = min_content_chars
        self._sleep = sleep

    async def fetch(self, url: str) -> FetchedPage:
        response, attempts = await self._download(url)
        content_type = response.headers.get("content-type", "text/html").lower()
        if not any(kind in content_type for kind in TEXT_CONTENT_TYPES):
            raise FetchFailureError(
                f"Unsupported content type {content_type!r} for {url}",
                code="415_UNSUPPORTED_CONTENT",
                attempts=attempts,
            )

        title, extracted = extract_readable_text(
            response.text,
            min_fragment_chars=self._min_fragment_chars,
        )
        if len(extracted.text) < self._min_content_chars:
            metrics.increment("research.fetch.insufficient_content")
            raise InsufficientContentError(
                f"Extracted {len(extracted.text)} characters from {url}",
                attempts=attempts,
            )

        metrics.increment("research.fetch.success", tags={"selector": extracted.selector})
        return FetchedPage(
            url=url,
            title=title,
            text=extracted.text[: self._max_chars],
            status_code=response.status_code,
            attempts=attempts,
            selector=extracted.selector,
        )

    async def _download(self, url: str) -> tuple[httpx.Response, int]:
        max_attempts = self._retries_on_403 + 1
        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._client.get(
                    url,
                    headers=BROWSER_HEADERS,
                    follow_redirects=True,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as exc:
                raise FetchFailureError(f"Timed out fetching {url}", code="504_FETCH_TIMEOUT", attempts=attempt) from exc
            except httpx.RequestError as exc:
                raise FetchFailureError(f"Request failed for {url}: {exc}", attempts=attempt) from exc

            status = response.status_code
            if status < 400:
                return response, attempt
            if status == RETRYABLE_STATUS and attempt < max_attempts:
                logger.warning("research.fetch.retry", extra={"url": url, "status": status, "attempt": attempt})
                await self._sleep(self._retry_delay)
                continue
            metrics.increment("research.fetch.http_error", tags={"status": status})
            raise FetchFailureError(f"HTTP {status} fetching {url}", code=f"{status}_HTTP_STATUS", attempts=attempt)

        raise FetchFailureError(f"Exceeded retry policy for {url}", attempts=max_attempts)
