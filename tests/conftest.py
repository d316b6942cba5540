from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from tests.helpers.metrics_stub import StubMetrics
from thnk.services.research import (
    analyzer,
    bias_insight,
    candidates,
    enricher,
    fallback_sources,
    fetcher,
    liveness,
    pipeline,
)
from thnk.services.research.context import ResearchContext

_METRIC_MODULES = (analyzer, bias_insight, candidates, enricher, fallback_sources, fetcher, liveness, pipeline)

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def stub_metrics(monkeypatch: pytest.MonkeyPatch) -> StubMetrics:
    stub = StubMetrics()
    for module in _METRIC_MODULES:
        monkeypatch.setattr(module, "metrics", stub)
    return stub


@pytest.fixture
def research_context() -> ResearchContext:
    return ResearchContext(
        generative_timeout_seconds=2.0,
        fetch_retry_delay_seconds=0.0,
        enrichment_pause_seconds=0.0,
    )


@pytest.fixture
def mock_http() -> Callable[[Handler], httpx.AsyncClient]:
    def _build(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build
