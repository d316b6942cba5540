from __future__ import annotations

import httpx
import pytest

from thnk.services.research.liveness import LivenessProber


@pytest.mark.asyncio
async def test_probe_reports_live_for_success_status(mock_http, stub_metrics):
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(200, headers={"content-type": "text/html"})

    async with mock_http(handler) as client:
        result = await LivenessProber(http_client=client).probe("https://example.com/a")

    assert seen == ["HEAD"]
    assert result.live is True
    assert result.status_code == 200
    assert result.content_type == "text/html"
    assert result.error_code is None
    assert stub_metrics.counted("research.probe")[0]["tags"]["live"] is True


@pytest.mark.asyncio
async def test_probe_follows_redirects(mock_http, stub_metrics):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(301, headers={"location": "https://example.com/new"})
        return httpx.Response(204)

    async with mock_http(handler) as client:
        result = await LivenessProber(http_client=client).probe("https://example.com/old")

    assert result.live is True
    assert result.status_code == 204


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 405, 500])
async def test_probe_treats_error_status_as_dead(mock_http, stub_metrics, status: int):
    async with mock_http(lambda request: httpx.Response(status)) as client:
        result = await LivenessProber(http_client=client).probe("https://example.com/missing")

    assert result.live is False
    assert result.error_code == f"{status}_HTTP_STATUS"


@pytest.mark.asyncio
async def test_probe_maps_timeouts_and_transport_errors(mock_http, stub_metrics):
    def timeout_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    def error_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_http(timeout_handler) as client:
        timed_out = await LivenessProber(http_client=client).probe("https://slow.example.com")
    async with mock_http(error_handler) as client:
        refused = await LivenessProber(http_client=client).probe("https://down.example.com")

    assert timed_out.live is False
    assert timed_out.error_code == "504_HEAD_TIMEOUT"
    assert refused.live is False
    assert refused.error_code == "520_PROBE_ERROR"


def test_prober_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        LivenessProber(http_client=httpx.AsyncClient(), timeout_seconds=0)
