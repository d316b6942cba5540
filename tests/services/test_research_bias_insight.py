from __future__ import annotations

import pytest

from tests.helpers.generative_stub import StubGenerativeClient
from thnk.models.sources import ContentOrigin, ValidatedSource
from thnk.services.research.bias_insight import BiasInsightGenerator, default_bias_insight, render_sources
from thnk.services.research.errors import GenerativeCallError

SOURCES = [
    ValidatedSource(
        url="https://www.cdc.gov/flu",
        title="Flu vaccines",
        domain="cdc.gov",
        source_type="government",
        credibility_score=0.85,
        neutrality_score=0.9,
        sentiment_score=0.6,
        tags=["vaccines", "influenza"],
        verified=True,
        content_origin=ContentOrigin.DIRECT_FETCH,
    ),
    ValidatedSource(
        url="https://blog.example.com/opinion",
        domain="blog.example.com",
        credibility_score=0.3,
        content_origin=ContentOrigin.AI_DESCRIPTION,
    ),
]


def test_render_sources_lists_every_source():
    rendered = render_sources(SOURCES)

    lines = rendered.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("1. Flu vaccines (cdc.gov)")
    assert "credibility=0.85" in lines[0]
    assert "tags=vaccines, influenza" in lines[0]
    assert lines[1].startswith("2. blog.example.com (blog.example.com)")
    assert "tags=none" in lines[1]
    assert render_sources([]) == "(none)"


@pytest.mark.asyncio
async def test_generate_parses_structured_insight(research_context, stub_metrics):
    client = StubGenerativeClient(
        {
            "bias_insight": {
                "overall_assessment": "Sources lean on official guidance.",
                "key_findings": ["Government sources dominate."],
                "critical_thinking_questions": ["What do independent researchers say?"],
                "research_suggestions": ["Read peer-reviewed trials."],
                "confidence_level": "HIGH",
                "bias_indicators": {"perspective_gaps": ["patient experience"], "source_diversity": "low"},
            }
        }
    )

    insight = await BiasInsightGenerator(client=client, context=research_context).generate(
        prompt="Are flu vaccines effective?",
        summary="Mostly yes.",
        neutrality=0.72,
        persuasion=0.41,
        sources=SOURCES,
    )

    assert insight.overall_assessment == "Sources lean on official guidance."
    assert insight.confidence_level == "high"
    assert insight.bias_indicators.perspective_gaps == ["patient experience"]
    assert insight.bias_indicators.language_patterns == []
    prompt = client.requests[0].prompt
    assert "Overall neutrality score: 0.72" in prompt
    assert "Flu vaccines (cdc.gov)" in prompt


@pytest.mark.asyncio
async def test_generate_keeps_insight_when_optional_fields_are_null(research_context, stub_metrics):
    client = StubGenerativeClient(
        {
            "bias_insight": {
                "overall_assessment": "Sources lean institutional.",
                "key_findings": ["Agencies dominate.", 42, None, "  "],
                "critical_thinking_questions": None,
                "research_suggestions": None,
                "confidence_level": None,
                "bias_indicators": None,
            }
        }
    )

    insight = await BiasInsightGenerator(client=client, context=research_context).generate(
        prompt="Are flu vaccines effective?",
        summary="Mostly yes.",
        neutrality=0.7,
        persuasion=0.3,
        sources=SOURCES,
    )

    assert insight != default_bias_insight()
    assert insight.overall_assessment == "Sources lean institutional."
    assert insight.key_findings == ["Agencies dominate."]
    assert insight.critical_thinking_questions == []
    assert insight.research_suggestions == []
    assert insight.confidence_level == "low"
    assert insight.bias_indicators.language_patterns == []
    assert insight.bias_indicators.source_diversity == "unknown"
    assert stub_metrics.counted("research.bias_insight.default_used") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        GenerativeCallError("down"),
        "no json here",
        {"overall_assessment": "   ", "key_findings": []},
    ],
)
async def test_generate_falls_back_to_default(research_context, stub_metrics, reply):
    client = StubGenerativeClient({"bias_insight": reply})

    insight = await BiasInsightGenerator(client=client, context=research_context).generate(
        prompt="topic",
        summary="summary",
        neutrality=0.5,
        persuasion=0.5,
        sources=SOURCES,
    )

    assert insight == default_bias_insight()
    assert stub_metrics.counted("research.bias_insight.default_used")


def test_default_bias_insight_is_generic_guidance():
    insight = default_bias_insight()

    assert insight.confidence_level == "low"
    assert insight.critical_thinking_questions
    assert insight.research_suggestions
