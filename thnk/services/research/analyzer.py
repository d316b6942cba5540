"""Neutrality, sentiment, tags and summary via independent generative calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from thnk.clients.generative import GenerativeClient, GenerativeRequest, generate_with_timeout
from thnk.models.research import ContentAnalysis
from thnk.models.sources import NEUTRAL_SCORE, clamp_score, normalize_tags
from thnk.observability.metrics import metrics
from thnk.services.research import prompts
from thnk.services.research.context import ResearchContext
from thnk.services.research.errors import AnalysisMalformedError, GenerativeCallError
from thnk.services.research.parsing import ModelT, decode_payload

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_CHARS = 200


class ScorePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    neutrality_score: float = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("neutrality_score", "neutralityScore", "neutrality"),
    )
    sentiment_score: float = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("sentiment_score", "sentimentScore", "sentiment"),
    )

    @field_validator("neutrality_score", "sentiment_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        if value is not None and not isinstance(value, (int, float)):
            raise ValueError("score must be numeric")
        return clamp_score(value)


class TagsPayload(BaseModel):
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, value: Any) -> Any:
        if isinstance(value, list):
            return {"tags": value}
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            raise ValueError("tags must be a list")
        return normalize_tags(value)


class SummaryPayload(BaseModel):
    summary: str

    @field_validator("summary")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("summary must not be empty")
        return cleaned


def truncate_summary(text: str, limit: int = SUMMARY_FALLBACK_CHARS) -> str:
    cleaned = " ".join((text or "").split())
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit] + "..."


class ContentAnalyzer:
    """Derives analysis metrics for text, never raising on backend misbehaviour."""

    def __init__(self, *, client: GenerativeClient, context: ResearchContext) -> None:
        self._client = client
        self._context = context

    async def analyze(self, text: str) -> ContentAnalysis:
        scores, tags, summary = await asyncio.gather(
            self.score_text(text),
            self.tag_text(text),
            self.summarize_text(text),
        )
        return ContentAnalysis(
            neutrality_score=scores.neutrality_score,
            sentiment_score=scores.sentiment_score,
            tags=tags,
            summary=summary,
        )

    async def score_text(self, text: str) -> ScorePayload:
        payload = await self._decode(
            "neutrality_sentiment",
            prompts.SCORES_PROMPT,
            prompts.SCORES_SCHEMA,
            ScorePayload,
            text,
        )
        return payload if payload is not None else ScorePayload()

    async def tag_text(self, text: str) -> list[str]:
        payload = await self._decode(
            "content_tags",
            prompts.TAGS_PROMPT,
            prompts.TAGS_SCHEMA,
            TagsPayload,
            text,
        )
        return payload.tags if payload is not None else []

    async def summarize_text(self, text: str) -> str:
        payload = await self._decode(
            "content_summary",
            prompts.SUMMARY_PROMPT,
            prompts.SUMMARY_SCHEMA,
            SummaryPayload,
            text,
        )
        return payload.summary if payload is not None else truncate_summary(text)

    async def _decode(
        self,
        task: str,
        template: str,
        schema: dict[str, Any],
        model: type[ModelT],
        text: str,
    ) -> ModelT | None:
        sample = (text or "")[: self._context.analysis_sample_chars]
        request = GenerativeRequest(
            model=self._context.model,
            prompt=template.format(text=sample),
            system_instruction=prompts.SYSTEM_INSTRUCTION,
            output_schema=schema,
            schema_name=task,
            temperature=self._context.temperature,
        )
        try:
            raw = await generate_with_timeout(
                self._client,
                request,
                timeout=self._context.generative_timeout_seconds,
            )
            return decode_payload(raw, model, max_chars=self._context.analysis_max_payload_chars)
        except (AnalysisMalformedError, GenerativeCallError) as exc:
            metrics.increment("research.analysis.default_used", tags={"task": task, "code": exc.code})
            logger.warning("research.analysis.default_used", extra={"task": task, "code": exc.code})
            return None
