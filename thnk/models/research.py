"""Aggregate research result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from thnk.models.sources import NEUTRAL_SCORE, ValidatedSource


class ScoreRange(BaseModel):
    """Min/max/average over one score across the source set."""

    min: float = 0.0
    max: float = 0.0
    average: float = 0.0


class CorpusMetrics(BaseModel):
    """Corpus-level statistics over validated sources."""

    neutrality: ScoreRange = Field(default_factory=ScoreRange)
    sentiment: ScoreRange = Field(default_factory=ScoreRange)
    credibility: ScoreRange = Field(default_factory=ScoreRange)
    diversity_score: float = Field(default=0.0, ge=0.0, le=1.0)
    balanced_perspectives: bool = False
    source_type_histogram: dict[str, int] = Field(default_factory=dict)


class QualityRating(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QualityAssessment(BaseModel):
    """Weighted quality rating derived from corpus metrics."""

    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    factors: list[str] = Field(default_factory=list)
    rating: QualityRating = QualityRating.LOW


class BiasIndicators(BaseModel):
    language_patterns: list[str] = Field(default_factory=list)
    perspective_gaps: list[str] = Field(default_factory=list)
    source_diversity: str = "unknown"


class BiasInsight(BaseModel):
    """Critical-thinking output produced for a research result."""

    overall_assessment: str = ""
    key_findings: list[str] = Field(default_factory=list)
    critical_thinking_questions: list[str] = Field(default_factory=list)
    research_suggestions: list[str] = Field(default_factory=list)
    confidence_level: str = "low"
    bias_indicators: BiasIndicators = Field(default_factory=BiasIndicators)


class ContentAnalysis(BaseModel):
    """Neutrality, sentiment, tags and summary derived for one text."""

    neutrality_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    sentiment_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    summary: str = ""


class ResearchResult(BaseModel):
    """Aggregate root returned once per pipeline invocation."""

    prompt: str
    summary: str = ""
    neutrality_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    persuasion_score: float = Field(default=NEUTRAL_SCORE, ge=0.0, le=1.0)
    sources: list[ValidatedSource] = Field(default_factory=list)
    corpus_metrics: CorpusMetrics = Field(default_factory=CorpusMetrics)
    quality_assessment: QualityAssessment = Field(default_factory=QualityAssessment)
    bias_insight: BiasInsight = Field(default_factory=BiasInsight)
    fallback_used: bool = False
    error_code: str | None = None
