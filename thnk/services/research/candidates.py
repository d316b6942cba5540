"""Asks the generative backend for candidate supporting sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from thnk.clients.generative import GenerativeClient, GenerativeRequest, generate_with_timeout
from thnk.models.sources import NEUTRAL_SCORE, CandidateSource, clamp_score
from thnk.observability.metrics import metrics
from thnk.services.research import prompts
from thnk.services.research.context import ResearchContext
from thnk.services.research.errors import AnalysisMalformedError, GenerativeCallError
from thnk.services.research.parsing import decode_payload
from thnk.services.research.urls import extract_domain

logger = logging.getLogger(__name__)


class CandidateListPayload(BaseModel):
    """Envelope returned by the candidate call; entries are validated one by one."""

    neutrality_score: float = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("neutrality_score", "neutralityScore"),
    )
    persuasion_score: float = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("persuasion_score", "persuasionScore"),
    )
    sources: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("neutrality_score", "persuasion_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("sources", mode="before")
    @classmethod
    def _keep_objects(cls, value: Any) -> list[dict[str, Any]]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("sources must be a list")
        return [entry for entry in value if isinstance(entry, dict)]


_FIELD_ALIASES = {
    "snippet": ("snippet", "description", "summary"),
    "source_type": ("source_type", "sourceType", "type"),
}


@dataclass(frozen=True)
class CandidateExtraction:
    """Surviving candidates plus the generator's overall estimates."""

    candidates: list[CandidateSource] = field(default_factory=list)
    neutrality_score: float = NEUTRAL_SCORE
    persuasion_score: float = NEUTRAL_SCORE
    rejected: int = 0
    degraded: bool = False


def build_candidate(entry: dict[str, Any]) -> CandidateSource | None:
    """Validate one raw entry, returning None when it is unusable."""
    normalized = dict(entry)
    for target, aliases in _FIELD_ALIASES.items():
        for alias in aliases:
            if normalized.get(alias) is not None:
                normalized[target] = normalized[alias]
                break
    url = normalized.get("url")
    if not isinstance(url, str) or not url.strip():
        return None
    if not normalized.get("domain"):
        normalized["domain"] = extract_domain(url.strip())
    try:
        return CandidateSource.model_validate(
            {
                "url": url.strip(),
                "title": str(normalized.get("title") or "").strip(),
                "snippet": str(normalized.get("snippet") or "").strip(),
                "domain": str(normalized.get("domain") or "").strip().lower(),
                "source_type": normalized.get("source_type"),
                "confidence": normalized.get("confidence"),
            }
        )
    except (ValidationError, ValueError):
        return None


class SourceCandidateExtractor:
    """Requests a bounded candidate list and keeps only high-confidence entries."""

    def __init__(self, *, client: GenerativeClient, context: ResearchContext) -> None:
        self._client = client
        self._context = context

    async def extract(self, prompt: str) -> CandidateExtraction:
        request = GenerativeRequest(
            model=self._context.model,
            prompt=prompts.CANDIDATES_PROMPT.format(
                prompt=prompt,
                min_sources=self._context.min_candidates,
                max_sources=self._context.max_candidates,
            ),
            system_instruction=prompts.SYSTEM_INSTRUCTION,
            output_schema=prompts.CANDIDATES_SCHEMA,
            schema_name="source_candidates",
            temperature=self._context.temperature,
        )
        try:
            raw = await generate_with_timeout(
                self._client,
                request,
                timeout=self._context.generative_timeout_seconds,
            )
            payload = decode_payload(
                raw,
                CandidateListPayload,
                max_chars=self._context.analysis_max_payload_chars,
            )
        except (AnalysisMalformedError, GenerativeCallError) as exc:
            metrics.increment("research.candidates.default_used", tags={"code": exc.code})
            logger.warning("research.candidates.default_used", extra={"code": exc.code})
            return CandidateExtraction(degraded=True)

        threshold = self._context.confidence_threshold
        candidates: list[CandidateSource] = []
        rejected = 0
        for entry in payload.sources:
            candidate = build_candidate(entry)
            if candidate is None or candidate.confidence < threshold:
                rejected += 1
                continue
            if len(candidates) >= self._context.max_candidates:
                rejected += 1
                continue
            candidates.append(candidate)

        metrics.gauge("research.candidates.accepted", len(candidates))
        metrics.gauge("research.candidates.rejected", rejected)
        logger.info(
            "research.candidates.extracted",
            extra={"accepted": len(candidates), "rejected": rejected, "threshold": threshold},
        )
        return CandidateExtraction(
            candidates=candidates,
            neutrality_score=payload.neutrality_score,
            persuasion_score=payload.persuasion_score,
            rejected=rejected,
        )
