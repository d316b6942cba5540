"""Corpus-level statistics over validated sources."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from statistics import fmean, pvariance

from thnk.models.research import CorpusMetrics, ScoreRange
from thnk.models.sources import ValidatedSource

DIVERSITY_SCALE = 5.0
BALANCE_MIN_SOURCES = 3
BALANCE_HIGH = 0.7
BALANCE_LOW = 0.4


def summarize_scores(values: Sequence[float]) -> ScoreRange:
    if not values:
        return ScoreRange()
    return ScoreRange(
        min=round(min(values), 4),
        max=round(max(values), 4),
        average=round(fmean(values), 4),
    )


def diversity_score(neutrality_scores: Sequence[float]) -> float:
    """Spread of neutrality scores: population variance scaled by 5, capped at 1."""
    if len(neutrality_scores) < 2:
        return 0.0
    return round(min(pvariance(neutrality_scores) * DIVERSITY_SCALE, 1.0), 4)


def balanced_perspectives(neutrality_scores: Sequence[float]) -> bool:
    """True when at least three scores cover opposing sides or sit mostly mid-range."""
    if len(neutrality_scores) < BALANCE_MIN_SOURCES:
        return False
    has_high = any(score > BALANCE_HIGH for score in neutrality_scores)
    has_low = any(score < BALANCE_LOW for score in neutrality_scores)
    if has_high and has_low:
        return True
    moderate = sum(1 for score in neutrality_scores if BALANCE_LOW <= score <= BALANCE_HIGH)
    return moderate >= len(neutrality_scores) / 2


def aggregate_metrics(sources: Sequence[ValidatedSource]) -> CorpusMetrics:
    neutrality = [source.neutrality_score for source in sources]
    sentiment = [source.sentiment_score for source in sources]
    credibility = [source.credibility_score for source in sources]
    histogram = Counter(source.source_type for source in sources)
    return CorpusMetrics(
        neutrality=summarize_scores(neutrality),
        sentiment=summarize_scores(sentiment),
        credibility=summarize_scores(credibility),
        diversity_score=diversity_score(neutrality),
        balanced_perspectives=balanced_perspectives(neutrality),
        source_type_histogram=dict(histogram),
    )
