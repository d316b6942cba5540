"""Lightweight HEAD probes confirming a source URL responds."""

from __future__ import annotations

import logging
import ssl
import time
from dataclasses import dataclass

import httpx

from thnk.observability.metrics import metrics

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(frozen=True)
class ProbeResult:
    """Network outcome for a single HEAD probe."""

    url: str
    live: bool
    status_code: int | None = None
    content_type: str | None = None
    latency_ms: float | None = None
    error_code: str | None = None


class LivenessProber:
    """Issues one HEAD request per URL; [200, 400) is live, everything else is dead."""

    def __init__(self, *, http_client: httpx.AsyncClient, timeout_seconds: float = 6.0) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._client = http_client
        self._timeout = httpx.Timeout(timeout_seconds)

    async def probe(self, url: str) -> ProbeResult:
        start = time.perf_counter()
        try:
            response = await self._client.head(
                url,
                headers=BROWSER_HEADERS,
                follow_redirects=True,
                timeout=self._timeout,
            )
        except httpx.TimeoutException:
            result = ProbeResult(url=url, live=False, error_code="504_HEAD_TIMEOUT")
        except httpx.RequestError as exc:
            code = "523_TLS_HANDSHAKE_FAILED" if isinstance(exc.__cause__, ssl.SSLError) else "520_PROBE_ERROR"
            result = ProbeResult(url=url, live=False, error_code=code)
        else:
            status = response.status_code
            live = 200 <= status < 400
            result = ProbeResult(
                url=url,
                live=live,
                status_code=status,
                content_type=response.headers.get("content-type"),
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                error_code=None if live else f"{status}_HTTP_STATUS",
            )

        metrics.increment("research.probe", tags={"live": result.live, "code": result.error_code or "ok"})
        if not result.live:
            logger.info(
                "research.probe.dead",
                extra={"url": url, "status": result.status_code, "error_code": result.error_code},
            )
        return result
