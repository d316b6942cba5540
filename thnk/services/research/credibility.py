"""Domain and declared-type credibility scoring."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from thnk.models.sources import normalize_source_type

MIN_CREDIBILITY: Final = 0.1
MAX_CREDIBILITY: Final = 1.0

ESTABLISHED_NEWS_DOMAINS: Final[frozenset[str]] = frozenset(
    {
        "apnews.com",
        "bbc.com",
        "bbc.co.uk",
        "bloomberg.com",
        "cnn.com",
        "economist.com",
        "ft.com",
        "npr.org",
        "nytimes.com",
        "reuters.com",
        "theguardian.com",
        "washingtonpost.com",
        "wsj.com",
    }
)

_DOMAIN_SUFFIX_SCORES: Final[tuple[tuple[str, float], ...]] = (
    (".edu", 0.9),
    (".gov", 0.85),
    (".org", 0.7),
    (".com", 0.6),
)

_TYPE_SCORES: Final[Mapping[str, float]] = MappingProxyType(
    {
        "academic": 0.9,
        "scientific_journal": 0.9,
        "government": 0.85,
        "established_news": 0.8,
        "news": 0.7,
        "organization": 0.7,
        "general": 0.5,
    }
)


@dataclass(frozen=True)
class CredibilityWeights:
    """Tables driving credibility scoring and the unverified-source penalty."""

    base_score: float = 0.5
    established_news_score: float = 0.8
    domain_suffix_scores: tuple[tuple[str, float], ...] = _DOMAIN_SUFFIX_SCORES
    type_scores: Mapping[str, float] = field(default_factory=lambda: _TYPE_SCORES)
    established_news_domains: frozenset[str] = ESTABLISHED_NEWS_DOMAINS
    unverified_penalty: float = 0.3
    unverified_floor: float = 0.2


DEFAULT_WEIGHTS: Final = CredibilityWeights()


def _normalize_domain(domain: str) -> str:
    host = (domain or "").strip().lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def _is_established_news(host: str, allowlist: frozenset[str]) -> bool:
    return any(host == known or host.endswith(f".{known}") for known in allowlist)


def domain_score(domain: str, *, weights: CredibilityWeights = DEFAULT_WEIGHTS) -> float:
    host = _normalize_domain(domain)
    score = weights.base_score
    for suffix, value in weights.domain_suffix_scores:
        if host.endswith(suffix):
            score = value
            break
    if host and _is_established_news(host, weights.established_news_domains):
        score = max(score, weights.established_news_score)
    return score


def score_credibility(
    domain: str,
    source_type: str,
    *,
    weights: CredibilityWeights = DEFAULT_WEIGHTS,
) -> float:
    """Map (domain, declared source type) onto a credibility score in [0.1, 1]."""
    type_score = weights.type_scores.get(normalize_source_type(source_type), weights.base_score)
    score = max(domain_score(domain, weights=weights), type_score)
    return round(max(MIN_CREDIBILITY, min(MAX_CREDIBILITY, score)), 4)


def penalize_unverified(score: float, *, weights: CredibilityWeights = DEFAULT_WEIGHTS) -> float:
    """Reduce the score of a source whose content could not be fetched."""
    return round(max(score - weights.unverified_penalty, weights.unverified_floor), 4)
