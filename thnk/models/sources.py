"""Candidate and validated source models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

NEUTRAL_SCORE = 0.5
MAX_TAGS = 8
MAX_TAG_LENGTH = 40


class ContentOrigin(str, Enum):
    """Where the text backing a validated source came from."""

    DIRECT_FETCH = "direct_fetch"
    AI_DESCRIPTION = "ai_description"
    PREDEFINED = "predefined"


def clamp_score(value: Any, *, low: float = 0.0, high: float = 1.0, default: float = NEUTRAL_SCORE) -> float:
    """Coerce a possibly missing or out-of-range score into [low, high]."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(low, min(high, number))


def normalize_tags(values: Iterable[Any], *, limit: int = MAX_TAGS) -> list[str]:
    """Return an ordered, case-insensitively de-duplicated tag list."""
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        tag = " ".join(value.split())
        if not tag or len(tag) > MAX_TAG_LENGTH:
            continue
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(tag)
        if len(ordered) >= limit:
            break
    return ordered


def normalize_source_type(value: Any) -> str:
    """Lower-case declared source types and join words with underscores."""
    if not isinstance(value, str):
        return "general"
    normalized = "_".join(value.strip().lower().replace("-", " ").split())
    return normalized or "general"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CandidateSource(BaseModel):
    """Untrusted source suggestion returned by the generative backend."""

    url: str
    title: str = ""
    snippet: str = ""
    domain: str = ""
    source_type: str = "general"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("source_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return normalize_source_type(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return clamp_score(value, default=0.0)


class ValidatedSource(BaseModel):
    """Candidate that passed canonicalization and carries measured or penalized metrics."""

    url: str
    title: str = ""
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    neutrality_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    sentiment_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    domain: str = ""
    source_type: str = "general"
    credibility_score: float = Field(default=NEUTRAL_SCORE, ge=0.1, le=1.0)
    verified: bool = False
    content_origin: ContentOrigin
    last_verified_at: datetime = Field(default_factory=_utcnow)

    @field_validator("neutrality_score", "sentiment_score", mode="before")
    @classmethod
    def _default_unmeasured(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("credibility_score", mode="before")
    @classmethod
    def _clamp_credibility(cls, value: Any) -> float:
        return clamp_score(value, low=0.1)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return normalize_tags([value])
        return normalize_tags(value)

    @field_validator("source_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return normalize_source_type(value)
