from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from thnk.models.sources import ContentOrigin
from thnk.services.research.fallback_sources import (
    DEFAULT_BUCKETS,
    FallbackCatalogError,
    FallbackSourceProvider,
    classify_topic,
    load_catalog,
)
from thnk.services.research.liveness import LivenessProber


def _live_hosts(*hosts: str):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200 if request.url.host in hosts else 503)

    return handler


@pytest.mark.parametrize(
    ("prompt", "topic"),
    [
        ("Is a vegan diet healthy for protein intake?", "nutrition"),
        ("What are the symptoms of measles and is the vaccine safe?", "health"),
        ("Who won the 1998 World Cup?", "general"),
        ("", "general"),
    ],
)
def test_classify_topic(prompt: str, topic: str):
    assert classify_topic(prompt) == topic


def test_classify_topic_ties_go_to_first_bucket():
    assert classify_topic("diet and disease") == "nutrition"


@pytest.mark.asyncio
async def test_provide_returns_live_predefined_sources(mock_http, stub_metrics):
    handler = _live_hosts("www.who.int", "www.cdc.gov")

    async with mock_http(handler) as client:
        provider = FallbackSourceProvider(prober=LivenessProber(http_client=client))
        sources = await provider.provide("How does the flu vaccine work?")

    assert [source.domain for source in sources] == ["who.int", "cdc.gov"]
    for source in sources:
        assert source.content_origin is ContentOrigin.PREDEFINED
        assert source.verified is True
        assert source.credibility_score == pytest.approx(0.8)
        assert source.neutrality_score == 0.5
        assert source.sentiment_score == 0.5
    assert stub_metrics.counted("research.fallback.used")[0]["tags"]["topic"] == "health"


@pytest.mark.asyncio
async def test_provide_falls_through_to_general_bucket(mock_http, stub_metrics):
    handler = _live_hosts("www.britannica.com")

    async with mock_http(handler) as client:
        provider = FallbackSourceProvider(prober=LivenessProber(http_client=client))
        sources = await provider.provide("Best food sources of vitamin D?")

    assert [source.domain for source in sources] == ["britannica.com"]
    assert stub_metrics.counted("research.fallback.used")[0]["tags"]["topic"] == "general"


@pytest.mark.asyncio
async def test_provide_returns_empty_when_everything_is_dead(mock_http, stub_metrics):
    async with mock_http(_live_hosts()) as client:
        provider = FallbackSourceProvider(prober=LivenessProber(http_client=client))
        sources = await provider.provide("anything")

    assert sources == []
    assert stub_metrics.counted("research.fallback.empty")


def test_default_buckets_end_with_general():
    assert DEFAULT_BUCKETS[-1].topic == "general"


def test_load_catalog_from_yaml(tmp_path: Path):
    path = tmp_path / "fallback.yaml"
    path.write_text(
        """
topics:
  climate:
    keywords: [Climate, warming, emissions]
    sources:
      - url: https://www.ipcc.ch
        title: IPCC
        excerpt: Intergovernmental climate assessments.
        source_type: organization
  general:
    sources:
      - url: https://www.britannica.com
        title: Britannica
""",
        encoding="utf-8",
    )

    buckets = load_catalog(path)

    assert [bucket.topic for bucket in buckets] == ["climate", "general"]
    assert buckets[0].keywords == ("climate", "warming", "emissions")
    assert buckets[0].entries[0].source_type == "organization"
    assert buckets[1].entries[0].source_type == "general"
    assert classify_topic("Is global warming accelerating?", buckets) == "climate"


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- just\n- a list\n", "mapping"),
        ("topics: {}\n", "topics"),
        ("topics:\n  health:\n    sources:\n      - url: https://www.cdc.gov\n        title: CDC\n", "general"),
        ("topics:\n  general:\n    sources:\n      - url: ftp://files.example.com\n        title: FTP\n", "invalid"),
        ("topics:\n  general:\n    sources:\n      - url: https://example.com\n", "title"),
        ("topics: [unclosed\n", "parse"),
    ],
)
def test_load_catalog_rejects_invalid_files(tmp_path: Path, content: str, message: str):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(FallbackCatalogError) as excinfo:
        load_catalog(path)

    assert message in str(excinfo.value)
    assert excinfo.value.code == "CATALOG_SCHEMA_INVALID"


def test_load_catalog_missing_file(tmp_path: Path):
    with pytest.raises(FallbackCatalogError) as excinfo:
        load_catalog(tmp_path / "missing.yaml")

    assert excinfo.value.code == "CATALOG_LOAD_ERROR"
