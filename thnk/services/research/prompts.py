"""Prompt texts and JSON output schemas for generative calls."""

from __future__ import annotations

from typing import Any, Final

SYSTEM_INSTRUCTION: Final = (
    "You are THNK, a research tool that helps users understand topics and URLs "
    "through tagging, neutrality and sentiment analysis. Be accurate, concise "
    "and even-handed. Never invent sources."
)

ANSWER_PROMPT: Final = """\
Answer the following research question in a concise, balanced summary of \
3-5 sentences. Present competing viewpoints where they exist.

Question: {prompt}\
"""

DIRECT_ANSWER_PROMPT: Final = """\
Give a short, direct and neutral answer to the following question.

Question: {prompt}\
"""

CANDIDATES_PROMPT: Final = """\
List between {min_sources} and {max_sources} real, publicly accessible web \
sources that support an answer to the question below, and estimate the \
overall neutrality and persuasiveness of the topic's typical coverage.

Rules:
- Only include a source if you are highly confident the exact URL exists. Omit it otherwise.
- Prefer academic, government and established news sources.
- "source_type" is one of: academic, scientific_journal, government, established_news, news, organization, general.
- "confidence" is your confidence between 0 and 1 that the URL exists and is relevant.
- "snippet" is a one or two sentence description of what the source says.
- Scores are between 0 and 1. Neutrality: 0 = strongly biased, 1 = strongly neutral. \
Persuasion: 0 = low persuasion, 1 = high persuasion.

Question: {prompt}\
"""

SCORES_PROMPT: Final = """\
Rate the following content. Return JSON with "neutrality_score" \
(0 = strongly biased, 1 = strongly neutral) and "sentiment_score" \
(0 = strongly negative, 1 = strongly positive).

Content:
{text}\
"""

TAGS_PROMPT: Final = """\
Generate up to 8 concise, relevant topic tags (one to three words each) for \
the following content. Return JSON with a "tags" array.

Content:
{text}\
"""

SUMMARY_PROMPT: Final = """\
Summarize the following content in two or three neutral sentences. Return \
JSON with a "summary" string.

Content:
{text}\
"""

BIAS_INSIGHT_PROMPT: Final = """\
You are helping a reader think critically about a research answer and the \
sources behind it.

Research question: {prompt}
Answer summary: {summary}
Overall neutrality score: {neutrality:.2f}
Overall persuasion score: {persuasion:.2f}

Validated sources:
{sources}

Produce an overall assessment, key findings, critical-thinking questions, \
research suggestions, a confidence level (low, medium or high) and bias \
indicators: language patterns, perspective gaps and a source diversity label.\
"""

_STRING_LIST: Final[dict[str, Any]] = {"type": "array", "items": {"type": "string"}}

SCORES_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {
        "neutrality_score": {"type": "number"},
        "sentiment_score": {"type": "number"},
    },
    "required": ["neutrality_score", "sentiment_score"],
}

TAGS_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {"tags": _STRING_LIST},
    "required": ["tags"],
}

SUMMARY_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {"summary": {"type": "string"}},
    "required": ["summary"],
}

CANDIDATES_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {
        "neutrality_score": {"type": "number"},
        "persuasion_score": {"type": "number"},
        "sources": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "url": {"type": "string"},
                    "title": {"type": "string"},
                    "snippet": {"type": "string"},
                    "domain": {"type": "string"},
                    "source_type": {"type": "string"},
                    "confidence": {"type": "number"},
                },
                "required": ["url", "title", "confidence"],
            },
        },
    },
    "required": ["neutrality_score", "persuasion_score", "sources"],
}

BIAS_INSIGHT_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {
        "overall_assessment": {"type": "string"},
        "key_findings": _STRING_LIST,
        "critical_thinking_questions": _STRING_LIST,
        "research_suggestions": _STRING_LIST,
        "confidence_level": {"type": "string", "enum": ["low", "medium", "high"]},
        "bias_indicators": {
            "type": "object",
            "properties": {
                "language_patterns": _STRING_LIST,
                "perspective_gaps": _STRING_LIST,
                "source_diversity": {"type": "string"},
            },
        },
    },
    "required": ["overall_assessment", "key_findings", "critical_thinking_questions"],
}
