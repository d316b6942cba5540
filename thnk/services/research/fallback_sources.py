"""Curated, re-probed sources used when no candidate survives enrichment."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import yaml

from thnk.models.sources import ContentOrigin, ValidatedSource, normalize_source_type
from thnk.observability.metrics import metrics
from thnk.services.research.errors import InvalidUrlError, ResearchError
from thnk.services.research.liveness import LivenessProber
from thnk.services.research.urls import canonicalize_url, extract_domain

logger = logging.getLogger(__name__)

GENERAL_TOPIC: Final = "general"


class FallbackCatalogError(ResearchError):
    """Raised when a fallback catalog file cannot be loaded or validated."""

    def __init__(self, message: str, code: str = "CATALOG_SCHEMA_INVALID") -> None:
        super().__init__(message, code=code)


@dataclass(frozen=True)
class FallbackEntry:
    url: str
    title: str
    excerpt: str
    source_type: str = "general"


@dataclass(frozen=True)
class FallbackBucket:
    topic: str
    keywords: tuple[str, ...]
    entries: tuple[FallbackEntry, ...]


DEFAULT_BUCKETS: Final[tuple[FallbackBucket, ...]] = (
    FallbackBucket(
        topic="nutrition",
        keywords=(
            "nutrition", "diet", "dietary", "food", "eat", "eating", "calorie", "calories",
            "vitamin", "protein", "sugar", "fat", "meal", "vegan", "vegetarian",
        ),
        entries=(
            FallbackEntry(
                url="https://www.nutrition.gov",
                title="Nutrition.gov",
                excerpt="USDA portal with federal food and nutrition information.",
                source_type="government",
            ),
            FallbackEntry(
                url="https://www.hsph.harvard.edu/nutritionsource",
                title="The Nutrition Source, Harvard T.H. Chan School of Public Health",
                excerpt="Evidence-based guidance on diet and nutrition research.",
                source_type="academic",
            ),
            FallbackEntry(
                url="https://www.dietaryguidelines.gov",
                title="Dietary Guidelines for Americans",
                excerpt="Federal dietary recommendations updated every five years.",
                source_type="government",
            ),
        ),
    ),
    FallbackBucket(
        topic="health",
        keywords=(
            "health", "disease", "medical", "medicine", "vaccine", "virus", "symptom",
            "symptoms", "doctor", "treatment", "cancer", "illness", "mental", "covid",
        ),
        entries=(
            FallbackEntry(
                url="https://www.who.int",
                title="World Health Organization",
                excerpt="Global public health guidance, data and fact sheets.",
                source_type="organization",
            ),
            FallbackEntry(
                url="https://www.cdc.gov",
                title="Centers for Disease Control and Prevention",
                excerpt="US public health agency publishing disease and prevention guidance.",
                source_type="government",
            ),
            FallbackEntry(
                url="https://www.nih.gov",
                title="National Institutes of Health",
                excerpt="US medical research agency with health information resources.",
                source_type="government",
            ),
        ),
    ),
    FallbackBucket(
        topic=GENERAL_TOPIC,
        keywords=(),
        entries=(
            FallbackEntry(
                url="https://www.wikipedia.org",
                title="Wikipedia",
                excerpt="Collaborative encyclopedia with cited overviews of most topics.",
                source_type="general",
            ),
            FallbackEntry(
                url="https://www.britannica.com",
                title="Encyclopaedia Britannica",
                excerpt="Edited reference encyclopedia.",
                source_type="general",
            ),
            FallbackEntry(
                url="https://www.reuters.com",
                title="Reuters",
                excerpt="International news agency.",
                source_type="established_news",
            ),
        ),
    ),
)

_WORD_PATTERN = re.compile(r"[a-z0-9]+")


def classify_topic(prompt: str, buckets: Sequence[FallbackBucket] = DEFAULT_BUCKETS) -> str:
    """Pick the bucket with the most keyword hits; ties go to the earlier bucket."""
    words = _WORD_PATTERN.findall((prompt or "").lower())
    best_topic = GENERAL_TOPIC
    best_hits = 0
    for bucket in buckets:
        keywords = set(bucket.keywords)
        hits = sum(1 for word in words if word in keywords)
        if hits > best_hits:
            best_topic, best_hits = bucket.topic, hits
    return best_topic


def _require_text(value: object, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FallbackCatalogError(f"{label} must be a non-empty string.")
    return value.strip()


def _parse_entry(raw: object, label: str) -> FallbackEntry:
    if not isinstance(raw, Mapping):
        raise FallbackCatalogError(f"{label} must be a mapping.")
    url = _require_text(raw.get("url"), f"{label}.url")
    try:
        canonicalize_url(url)
    except InvalidUrlError as exc:
        raise FallbackCatalogError(f"{label}.url is invalid: {url}") from exc
    return FallbackEntry(
        url=url,
        title=_require_text(raw.get("title"), f"{label}.title"),
        excerpt=str(raw.get("excerpt") or "").strip(),
        source_type=normalize_source_type(raw.get("source_type")),
    )


def load_catalog(path: Path) -> tuple[FallbackBucket, ...]:
    """Load fallback buckets from YAML; a ``general`` bucket is mandatory."""
    target = path.expanduser()
    if not target.exists():
        raise FallbackCatalogError(f"Fallback catalog not found at {target}", code="CATALOG_LOAD_ERROR")
    try:
        parsed = yaml.safe_load(target.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise FallbackCatalogError(f"Unable to parse YAML: {exc}") from exc
    if not isinstance(parsed, Mapping):
        raise FallbackCatalogError("Catalog must be a mapping.")

    topics = parsed.get("topics")
    if not isinstance(topics, Mapping) or not topics:
        raise FallbackCatalogError("topics must be a non-empty mapping.")

    buckets: list[FallbackBucket] = []
    for topic, body in topics.items():
        if not isinstance(topic, str) or not topic.strip():
            raise FallbackCatalogError(f"topics contains an invalid key: {topic!r}")
        if not isinstance(body, Mapping):
            raise FallbackCatalogError(f"topics.{topic} must be a mapping.")
        keywords = body.get("keywords") or []
        if not isinstance(keywords, list) or not all(isinstance(word, str) for word in keywords):
            raise FallbackCatalogError(f"topics.{topic}.keywords must be a list of strings.")
        entries = body.get("sources")
        if not isinstance(entries, list) or not entries:
            raise FallbackCatalogError(f"topics.{topic}.sources must be a non-empty list.")
        buckets.append(
            FallbackBucket(
                topic=topic.strip().lower(),
                keywords=tuple(word.strip().lower() for word in keywords if word.strip()),
                entries=tuple(
                    _parse_entry(entry, f"topics.{topic}.sources[{index}]")
                    for index, entry in enumerate(entries)
                ),
            )
        )

    if not any(bucket.topic == GENERAL_TOPIC for bucket in buckets):
        raise FallbackCatalogError("Catalog must define a 'general' topic.")
    logger.info("research.fallback.catalog_loaded", extra={"path": str(target), "topics": len(buckets)})
    return tuple(buckets)


class FallbackSourceProvider:
    """Returns live curated sources for the prompt's topic, falling through to general."""

    def __init__(
        self,
        *,
        prober: LivenessProber,
        buckets: Sequence[FallbackBucket] = DEFAULT_BUCKETS,
        credibility_score: float = 0.8,
    ) -> None:
        self._prober = prober
        self._buckets = {bucket.topic: bucket for bucket in buckets}
        self._ordered = tuple(buckets)
        self._credibility = credibility_score

    async def provide(self, prompt: str) -> list[ValidatedSource]:
        topic = classify_topic(prompt, self._ordered)
        chain = [topic] if topic == GENERAL_TOPIC else [topic, GENERAL_TOPIC]
        for name in chain:
            bucket = self._buckets.get(name)
            if bucket is None:
                continue
            sources = await self._live_sources(bucket)
            if sources:
                metrics.increment("research.fallback.used", tags={"topic": name})
                logger.info(
                    "research.fallback.sources",
                    extra={"requested_topic": topic, "topic": name, "count": len(sources)},
                )
                return sources
            logger.warning("research.fallback.bucket_dead", extra={"topic": name})
        metrics.increment("research.fallback.empty")
        return []

    async def _live_sources(self, bucket: FallbackBucket) -> list[ValidatedSource]:
        results = await asyncio.gather(*(self._prober.probe(entry.url) for entry in bucket.entries))
        sources: list[ValidatedSource] = []
        for entry, probe in zip(bucket.entries, results, strict=True):
            if not probe.live:
                continue
            url = canonicalize_url(entry.url)
            sources.append(
                ValidatedSource(
                    url=url,
                    title=entry.title,
                    excerpt=entry.excerpt,
                    domain=extract_domain(url),
                    source_type=entry.source_type,
                    credibility_score=self._credibility,
                    verified=True,
                    content_origin=ContentOrigin.PREDEFINED,
                )
            )
        return sources
