"""Immutable configuration bundle threaded through the research pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from thnk.config import Settings, settings as default_settings
from thnk.services.research.credibility import DEFAULT_WEIGHTS, CredibilityWeights
from thnk.services.research.quality import DEFAULT_QUALITY_WEIGHTS, QualityWeights


@dataclass(frozen=True)
class ResearchContext:
    """Configuration bundle for one research pipeline instance."""

    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    generative_timeout_seconds: float = 30.0
    confidence_threshold: float = 0.7
    min_candidates: int = 2
    max_candidates: int = 6
    probe_timeout_seconds: float = 6.0
    fetch_timeout_seconds: float = 10.0
    fetch_403_retries: int = 1
    fetch_retry_delay_seconds: float = 1.0
    fetch_max_chars: int = 8000
    min_fragment_chars: int = 50
    min_content_chars: int = 100
    analysis_sample_chars: int = 3000
    analysis_max_payload_chars: int = 100_000
    enrichment_concurrency: int = 3
    enrichment_pause_seconds: float = 0.25
    fallback_credibility: float = 0.8
    fallback_sources_path: Path | None = None
    credibility: CredibilityWeights = field(default_factory=lambda: DEFAULT_WEIGHTS)
    quality: QualityWeights = field(default_factory=lambda: DEFAULT_QUALITY_WEIGHTS)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        if self.enrichment_concurrency < 1:
            raise ValueError("enrichment_concurrency must be >= 1")
        if self.fetch_403_retries < 0:
            raise ValueError("fetch_403_retries must be >= 0")
        if self.max_candidates < 1:
            raise ValueError("max_candidates must be >= 1")


def build_research_context(source: Settings | None = None) -> ResearchContext:
    """Freeze environment settings into a ResearchContext."""
    config = source or default_settings
    fallback_path = Path(config.fallback_sources_path).expanduser() if config.fallback_sources_path else None
    return ResearchContext(
        model=config.research_model,
        temperature=config.research_temperature,
        generative_timeout_seconds=config.generative_timeout_seconds,
        confidence_threshold=config.candidate_confidence_threshold,
        max_candidates=config.max_candidates,
        probe_timeout_seconds=config.probe_timeout_seconds,
        fetch_timeout_seconds=config.fetch_timeout_seconds,
        fetch_403_retries=config.fetch_403_retries,
        fetch_retry_delay_seconds=config.fetch_retry_delay_seconds,
        fetch_max_chars=config.fetch_max_chars,
        analysis_sample_chars=config.analysis_sample_chars,
        analysis_max_payload_chars=config.analysis_max_payload_chars,
        enrichment_concurrency=config.enrichment_concurrency,
        enrichment_pause_seconds=config.enrichment_pause_seconds,
        fallback_sources_path=fallback_path,
    )
