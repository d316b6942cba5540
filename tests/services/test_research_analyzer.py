from __future__ import annotations

import pytest

from tests.helpers.generative_stub import StubGenerativeClient
from thnk.services.research.analyzer import ContentAnalyzer, ScorePayload, truncate_summary
from thnk.services.research.errors import AnalysisMalformedError, GenerativeCallError
from thnk.services.research.parsing import decode_payload, parse_json_payload

SAMPLE_TEXT = " ".join(["The committee published its findings on regional water usage."] * 10)


def test_parse_json_payload_accepts_code_fenced_json():
    raw = '```json\n{"neutrality_score": 0.6, "sentiment_score": 0.4}\n```'

    assert parse_json_payload(raw) == {"neutrality_score": 0.6, "sentiment_score": 0.4}


@pytest.mark.parametrize(
    ("raw", "code"),
    [
        (None, "422_NOT_JSON"),
        ("Sure! Here is the JSON you asked for.", "422_NOT_JSON"),
        ('{"neutrality_score": 0.6,', "422_NOT_JSON"),
        ("[" + "1," * 60 + "1]", "413_PAYLOAD_TOO_LARGE"),
    ],
)
def test_parse_json_payload_rejects_malformed_output(raw, code):
    with pytest.raises(AnalysisMalformedError) as excinfo:
        parse_json_payload(raw, max_chars=100)

    assert excinfo.value.code == code


def test_decode_payload_reports_schema_mismatch():
    with pytest.raises(AnalysisMalformedError) as excinfo:
        decode_payload('{"neutrality_score": "very neutral"}', ScorePayload)

    assert excinfo.value.code == "422_SCHEMA_MISMATCH"


def test_score_payload_accepts_camel_case_and_clamps():
    payload = decode_payload('{"neutralityScore": 1.7, "sentimentScore": -0.2}', ScorePayload)

    assert payload.neutrality_score == 1.0
    assert payload.sentiment_score == 0.0


def test_truncate_summary_appends_ellipsis_past_limit():
    assert truncate_summary("short text") == "short text"
    truncated = truncate_summary("x" * 250)
    assert truncated == "x" * 200 + "..."


@pytest.mark.asyncio
async def test_analyze_combines_three_independent_calls(research_context, stub_metrics):
    client = StubGenerativeClient(
        {
            "neutrality_sentiment": {"neutrality_score": 0.82, "sentiment_score": 0.35},
            "content_tags": ["Water Policy", "water policy", "Drought", "  "],
            "content_summary": {"summary": "  A committee reported on regional water usage.  "},
        }
    )
    analyzer = ContentAnalyzer(client=client, context=research_context)

    analysis = await analyzer.analyze(SAMPLE_TEXT)

    assert analysis.neutrality_score == pytest.approx(0.82)
    assert analysis.sentiment_score == pytest.approx(0.35)
    assert analysis.tags == ["Water Policy", "Drought"]
    assert analysis.summary == "A committee reported on regional water usage."
    assert {request.schema_name for request in client.requests} == {
        "neutrality_sentiment",
        "content_tags",
        "content_summary",
    }
    assert not stub_metrics.counted("research.analysis.default_used")


@pytest.mark.asyncio
async def test_analyze_substitutes_defaults_for_each_failed_call(research_context, stub_metrics):
    client = StubGenerativeClient(
        {
            "neutrality_sentiment": "I think it is fairly neutral.",
            "content_tags": GenerativeCallError("upstream", code="429_RATE_LIMIT"),
            "content_summary": {"summary": ""},
        }
    )
    analyzer = ContentAnalyzer(client=client, context=research_context)

    analysis = await analyzer.analyze(SAMPLE_TEXT)

    assert analysis.neutrality_score == 0.5
    assert analysis.sentiment_score == 0.5
    assert analysis.tags == []
    assert analysis.summary == truncate_summary(SAMPLE_TEXT)
    assert analysis.summary.endswith("...")
    codes = {call["tags"]["task"]: call["tags"]["code"] for call in stub_metrics.counted("research.analysis.default_used")}
    assert codes == {
        "neutrality_sentiment": "422_NOT_JSON",
        "content_tags": "429_RATE_LIMIT",
        "content_summary": "422_SCHEMA_MISMATCH",
    }


@pytest.mark.asyncio
async def test_analyzer_samples_long_text(research_context, stub_metrics):
    client = StubGenerativeClient({"neutrality_sentiment": {"neutrality_score": 0.5, "sentiment_score": 0.5}})
    analyzer = ContentAnalyzer(client=client, context=research_context)

    await analyzer.score_text("a" * 10_000)

    prompt = client.requests[0].prompt
    assert "a" * research_context.analysis_sample_chars in prompt
    assert "a" * (research_context.analysis_sample_chars + 1) not in prompt
