from __future__ import annotations

import pytest

from tests.helpers.generative_stub import StubGenerativeClient
from thnk.services.research.candidates import SourceCandidateExtractor, build_candidate
from thnk.services.research.context import ResearchContext
from thnk.services.research.errors import GenerativeCallError


def _payload(*sources: dict, neutrality: float = 0.7, persuasion: float = 0.3) -> dict:
    return {"neutrality_score": neutrality, "persuasion_score": persuasion, "sources": list(sources)}


def test_build_candidate_accepts_aliases_and_derives_domain():
    candidate = build_candidate(
        {
            "url": " https://www.NIH.gov/news/article ",
            "title": "NIH news",
            "description": "Agency announcement.",
            "sourceType": "Government",
            "confidence": 0.9,
        }
    )

    assert candidate is not None
    assert candidate.url == "https://www.NIH.gov/news/article"
    assert candidate.domain == "nih.gov"
    assert candidate.snippet == "Agency announcement."
    assert candidate.source_type == "government"


@pytest.mark.parametrize("entry", [{"title": "No URL"}, {"url": "   "}, {"url": 42}])
def test_build_candidate_rejects_unusable_entries(entry):
    assert build_candidate(entry) is None


@pytest.mark.asyncio
async def test_extract_filters_by_confidence_threshold(research_context, stub_metrics):
    client = StubGenerativeClient(
        {
            "source_candidates": _payload(
                {"url": "https://a.example.com", "title": "A", "confidence": 0.95},
                {"url": "https://b.example.com", "title": "B", "confidence": 0.7},
                {"url": "https://c.example.com", "title": "C", "confidence": 0.69},
                {"url": "https://d.example.com", "title": "D"},
                "not-an-object",
                {"title": "missing url", "confidence": 0.99},
            )
        }
    )

    extraction = await SourceCandidateExtractor(client=client, context=research_context).extract("What is X?")

    assert [candidate.url for candidate in extraction.candidates] == [
        "https://a.example.com",
        "https://b.example.com",
    ]
    assert all(candidate.confidence >= 0.7 for candidate in extraction.candidates)
    assert extraction.neutrality_score == pytest.approx(0.7)
    assert extraction.persuasion_score == pytest.approx(0.3)
    assert extraction.rejected == 3
    assert extraction.degraded is False
    request = client.requests[0]
    assert "What is X?" in request.prompt
    assert request.output_schema is not None


@pytest.mark.asyncio
async def test_extract_caps_candidate_count(stub_metrics):
    context = ResearchContext(max_candidates=2)
    entries = [{"url": f"https://s{index}.example.com", "confidence": 0.9} for index in range(5)]
    client = StubGenerativeClient({"source_candidates": _payload(*entries)})

    extraction = await SourceCandidateExtractor(client=client, context=context).extract("topic")

    assert len(extraction.candidates) == 2
    assert extraction.rejected == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        GenerativeCallError("boom", code="504_GENERATIVE_TIMEOUT"),
        "Here are some sources: reuters.com",
        {"neutrality_score": 0.5, "persuasion_score": 0.5, "sources": "reuters.com"},
    ],
)
async def test_extract_degrades_to_deterministic_payload(research_context, stub_metrics, reply):
    client = StubGenerativeClient({"source_candidates": reply})

    extraction = await SourceCandidateExtractor(client=client, context=research_context).extract("topic")

    assert extraction.candidates == []
    assert extraction.neutrality_score == 0.5
    assert extraction.persuasion_score == 0.5
    assert extraction.degraded is True
    assert stub_metrics.counted("research.candidates.default_used")


@pytest.mark.asyncio
async def test_extract_clamps_overall_scores(research_context, stub_metrics):
    client = StubGenerativeClient({"source_candidates": _payload(neutrality=3.0, persuasion=None)})

    extraction = await SourceCandidateExtractor(client=client, context=research_context).extract("topic")

    assert extraction.neutrality_score == 1.0
    assert extraction.persuasion_score == 0.5
