"""Critical-thinking guidance generated over a research result."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field, field_validator

from thnk.clients.generative import GenerativeClient, GenerativeRequest, generate_with_timeout
from thnk.models.research import BiasIndicators, BiasInsight
from thnk.models.sources import ValidatedSource
from thnk.observability.metrics import metrics
from thnk.services.research import prompts
from thnk.services.research.context import ResearchContext
from thnk.services.research.errors import AnalysisMalformedError, GenerativeCallError
from thnk.services.research.parsing import decode_payload

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = ("low", "medium", "high")


def default_bias_insight() -> BiasInsight:
    """Generic guidance used when no source-specific insight is available."""
    return BiasInsight(
        overall_assessment=(
            "An automated bias assessment was not available for this result. "
            "Treat the summary as a starting point and check it against primary sources."
        ),
        key_findings=[
            "The answer was produced without a source-specific bias review.",
        ],
        critical_thinking_questions=[
            "Who published each source, and what might their interests be?",
            "Which perspectives or stakeholders are missing from these sources?",
            "Is the evidence cited recent, and has it been independently confirmed?",
        ],
        research_suggestions=[
            "Compare coverage from outlets with different editorial positions.",
            "Look for peer-reviewed or official primary data on the topic.",
        ],
        confidence_level="low",
        bias_indicators=BiasIndicators(),
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class _IndicatorsPayload(BaseModel):
    language_patterns: list[str] = Field(default_factory=list)
    perspective_gaps: list[str] = Field(default_factory=list)
    source_diversity: str = "unknown"

    @field_validator("language_patterns", "perspective_gaps", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("source_diversity", mode="before")
    @classmethod
    def _diversity(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) and value.strip() else "unknown"


class BiasInsightPayload(BaseModel):
    overall_assessment: str
    key_findings: list[str] = Field(default_factory=list)
    critical_thinking_questions: list[str] = Field(default_factory=list)
    research_suggestions: list[str] = Field(default_factory=list)
    confidence_level: str = "low"
    bias_indicators: _IndicatorsPayload = Field(default_factory=_IndicatorsPayload)

    @field_validator("overall_assessment")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("overall_assessment must not be empty")
        return cleaned

    @field_validator("key_findings", "critical_thinking_questions", "research_suggestions", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("bias_indicators", mode="before")
    @classmethod
    def _indicators(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, _IndicatorsPayload)) else {}

    @field_validator("confidence_level", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> str:
        level = str(value or "").strip().lower()
        return level if level in CONFIDENCE_LEVELS else "low"

    def to_insight(self) -> BiasInsight:
        return BiasInsight(
            overall_assessment=self.overall_assessment,
            key_findings=self.key_findings,
            critical_thinking_questions=self.critical_thinking_questions,
            research_suggestions=self.research_suggestions,
            confidence_level=self.confidence_level,
            bias_indicators=BiasIndicators(**self.bias_indicators.model_dump()),
        )


def render_sources(sources: Sequence[ValidatedSource]) -> str:
    if not sources:
        return "(none)"
    lines = []
    for index, source in enumerate(sources, start=1):
        tags = ", ".join(source.tags) if source.tags else "none"
        lines.append(
            f"{index}. {source.title or source.domain} ({source.domain}) "
            f"type={source.source_type} credibility={source.credibility_score:.2f} "
            f"neutrality={source.neutrality_score:.2f} sentiment={source.sentiment_score:.2f} "
            f"tags={tags}"
        )
    return "\n".join(lines)


class BiasInsightGenerator:
    def __init__(self, *, client: GenerativeClient, context: ResearchContext) -> None:
        self._client = client
        self._context = context

    async def generate(
        self,
        *,
        prompt: str,
        summary: str,
        neutrality: float,
        persuasion: float,
        sources: Sequence[ValidatedSource],
    ) -> BiasInsight:
        request = GenerativeRequest(
            model=self._context.model,
            prompt=prompts.BIAS_INSIGHT_PROMPT.format(
                prompt=prompt,
                summary=summary,
                neutrality=neutrality,
                persuasion=persuasion,
                sources=render_sources(sources),
            ),
            system_instruction=prompts.SYSTEM_INSTRUCTION,
            output_schema=prompts.BIAS_INSIGHT_SCHEMA,
            schema_name="bias_insight",
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
                BiasInsightPayload,
                max_chars=self._context.analysis_max_payload_chars,
            )
        except (AnalysisMalformedError, GenerativeCallError) as exc:
            metrics.increment("research.bias_insight.default_used", tags={"code": exc.code})
            logger.warning("research.bias_insight.default_used", extra={"code": exc.code})
            return default_bias_insight()
        return payload.to_insight()
