"""Weighted quality rating over corpus metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from thnk.models.research import CorpusMetrics, QualityAssessment, QualityRating

HIGH_RATING_THRESHOLD: Final = 0.7
MEDIUM_RATING_THRESHOLD: Final = 0.4


@dataclass(frozen=True)
class QualityWeights:
    """Partial weight contributed by each quality factor when its threshold is met."""

    neutrality: float = 0.25
    diversity: float = 0.20
    perspective_range: float = 0.15
    credibility: float = 0.20
    type_variety: float = 0.10
    source_count: float = 0.10
    min_perspective_range: float = 0.3
    min_distinct_types: int = 3
    min_sources: int = 3


DEFAULT_QUALITY_WEIGHTS: Final = QualityWeights()


def _tier(value: float) -> float:
    """Full weight above 0.7, half weight above 0.5."""
    if value > 0.7:
        return 1.0
    if value > 0.5:
        return 0.5
    return 0.0


def rating_for(score: float) -> QualityRating:
    if score > HIGH_RATING_THRESHOLD:
        return QualityRating.HIGH
    if score > MEDIUM_RATING_THRESHOLD:
        return QualityRating.MEDIUM
    return QualityRating.LOW


def assess_quality(
    metrics: CorpusMetrics,
    *,
    overall_neutrality: float,
    weights: QualityWeights = DEFAULT_QUALITY_WEIGHTS,
) -> QualityAssessment:
    score = 0.0
    factors: list[str] = []

    tiered_factors = (
        (overall_neutrality, weights.neutrality, "overall neutrality"),
        (metrics.diversity_score, weights.diversity, "perspective diversity"),
        (metrics.credibility.average, weights.credibility, "source credibility"),
    )
    for value, weight, label in tiered_factors:
        tier = _tier(value)
        if not tier:
            continue
        score += weight * tier
        factors.append(f"{'High' if tier == 1.0 else 'Moderate'} {label}")

    if metrics.neutrality.max - metrics.neutrality.min > weights.min_perspective_range:
        factors.append("Wide range of perspectives")
        score += weights.perspective_range

    if len(metrics.source_type_histogram) >= weights.min_distinct_types:
        factors.append("Varied source types")
        score += weights.type_variety

    if sum(metrics.source_type_histogram.values()) >= weights.min_sources:
        factors.append("Adequate number of sources")
        score += weights.source_count

    quality_score = round(max(0.0, min(1.0, score)), 4)
    return QualityAssessment(quality_score=quality_score, factors=factors, rating=rating_for(quality_score))
