import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from conftest import make_point
from tworoute.exceptions import TransportProviderError
from tworoute.services.transport_provider import TransportProvider, build_query


def _http_provider(handler, max_attempts: int = 3) -> TransportProvider:
    return TransportProvider(
        base_url="http://provider.test",
        api_key="secret",
        max_attempts=max_attempts,
        transport=httpx.MockTransport(handler),
    )


class TestBuildQuery:
    def test_shape(self, make_request):
        request = make_request(avoid_modes=["bus"])
        query = build_query(request, "fastest", hard={"maxWalkingTime": 15}, soft={"preferSpeed": True})

        assert query["domain"] == "transport"
        assert query["parameters"] == {
            "origin": "41.9,12.5",
            "destination": "41.8,12.25",
            "departure_time": "now",
            "mode": "fastest",
        }
        assert query["constraints"]["hard"] == {"avoidModes": ["bus"], "maxWalkingTime": 15}
        assert query["constraints"]["soft"] == {"preferSpeed": True}
        assert query["filters"] == ["available", "operating"]
        assert set(query["scoring"]) == {"weights", "penalties", "bonuses"}


class TestMockMode:
    @pytest.mark.asyncio
    async def test_is_deterministic(self, mock_provider, make_request):
        query = build_query(make_request(), "fastest")
        assert mock_provider.is_mock
        first = await mock_provider.query(query)
        second = await mock_provider.query(query)
        assert first == second
        assert first

    @pytest.mark.asyncio
    async def test_respects_avoided_modes(self, mock_provider, make_request):
        candidates = await mock_provider.query(build_query(make_request(avoid_modes=["taxi"]), "fastest"))
        assert all(c["data"]["mode"] != "taxi" for c in candidates)

    @pytest.mark.asyncio
    async def test_cheapest_excludes_on_demand(self, mock_provider, make_request):
        candidates = await mock_provider.query(build_query(make_request(), "cheapest"))
        prices = [c["data"]["pricing"]["price"] for c in candidates]
        assert prices == sorted(prices)
        assert {c["data"]["mode"] for c in candidates}.isdisjoint({"taxi", "rideshare"})

    @pytest.mark.asyncio
    async def test_short_hop_has_no_transit_or_pickup(self, mock_provider, make_request):
        nearby = make_point("Cafe", 41.9027, 12.5, "landmark")
        request = make_request(destination=nearby)
        candidates = await mock_provider.query(build_query(request, "fastest"))
        assert {c["data"]["mode"] for c in candidates} <= {"taxi", "rideshare"}
        assert await mock_provider.query(build_query(request, "pickup")) == []

    @pytest.mark.asyncio
    async def test_pickup_points_for_longer_trips(self, mock_provider, make_request):
        points = await mock_provider.query(build_query(make_request(), "pickup"))
        names = [p["data"]["route"]["to"]["name"] for p in points]
        assert names == ["Main Street taxi rank", "Central Station forecourt"]

    @pytest.mark.asyncio
    async def test_scores_are_descending(self, mock_provider, make_request):
        candidates = await mock_provider.query(build_query(make_request(), "transit"))
        scores = [c["score"] for c in candidates]
        assert scores == sorted(scores, reverse=True)
        assert all(s >= 50 for s in scores)


class TestHttpMode:
    @pytest.mark.asyncio
    async def test_posts_query_and_sorts_candidates(self, make_request):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"id": "low", "score": 55}, {"id": "high", "score": 90}]})

        provider = _http_provider(handler)
        query = build_query(make_request(), "fastest")
        candidates = await provider.query(query)
        await provider.close()

        assert [c["id"] for c in candidates] == ["high", "low"]
        assert seen["path"] == "/v1/transport/search"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == query

    @pytest.mark.asyncio
    async def test_retries_rate_limit(self, make_request):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"candidates": []})

        provider = _http_provider(handler)
        with patch("tworoute.services.transport_provider.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await provider.query(build_query(make_request(), "fastest")) == []
        assert len(calls) == 2
        sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self, make_request):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        provider = _http_provider(handler, max_attempts=3)
        with patch("tworoute.services.transport_provider.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(TransportProviderError):
                await provider.query(build_query(make_request(), "fastest"))
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, make_request):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": "bad query"})

        provider = _http_provider(handler)
        with pytest.raises(TransportProviderError):
            await provider.query(build_query(make_request(), "fastest"))
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_errors_raise_after_retries(self, make_request):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _http_provider(handler, max_attempts=2)
        with patch("tworoute.services.transport_provider.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(TransportProviderError, match="unreachable"):
                await provider.query(build_query(make_request(), "fastest"))

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried(self, make_request):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("slow", request=request)

        provider = _http_provider(handler, max_attempts=3)
        sleep = AsyncMock()
        with patch("tworoute.services.transport_provider.asyncio.sleep", new=sleep):
            with pytest.raises(TransportProviderError, match="timed out"):
                await provider.query(build_query(make_request(), "fastest"))
        assert len(calls) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_payloads(self, make_request):
        provider = _http_provider(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(TransportProviderError, match="invalid JSON"):
            await provider.query(build_query(make_request(), "fastest"))

        provider = _http_provider(lambda request: httpx.Response(200, json={"candidates": {"id": 1}}))
        with pytest.raises(TransportProviderError, match="non-list"):
            await provider.query(build_query(make_request(), "fastest"))
