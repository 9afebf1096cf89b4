import asyncio

import pytest

from conftest import make_point
from tworoute.exceptions import NoRouteFound
from tworoute.services.transfer.composer import TransferComposer
from tworoute.services.transfer.models import complexity_for
from tworoute.services.transfer.scoring import score_cost
from tworoute.services.transfer.segments import build_route, taxi_segment, transit_segment
from tworoute.services.transfer.selection import routes_use_different_strategies


class TestScenarios:
    @pytest.mark.asyncio
    async def test_hotel_to_airport(self, mock_provider, memory_cache, make_request):
        composer = TransferComposer(mock_provider, memory_cache, strategy_timeout=5)
        result = await composer.compose(make_request(max_walking_time=15))

        assert result.primary is not None
        assert result.backup is not None
        assert result.primary.modes != ["walking"]
        assert result.backup.lead_mode != result.primary.lead_mode
        assert result.primary.type == "primary"
        assert result.backup.type == "backup"
        assert result.primary.score >= result.backup.score
        assert not result.from_cache
        assert [o.strategy for o in result.outcomes] == [
            "fastest", "reliable", "cheapest", "simplest", "hybrid", "transit-only",
        ]
        for outcome in result.outcomes:
            if outcome.route:
                assert outcome.route.complexity == complexity_for(len(outcome.route.segments))
        for route in (result.primary, result.backup):
            est = route.estimated_time
            assert est.optimistic <= est.realistic <= est.pessimistic
            assert route.instructions
            assert route.contingency_plan

    @pytest.mark.asyncio
    async def test_short_hop_walks_with_taxi_backup(self, mock_provider, make_request):
        nearby = make_point("Campo de' Fiori", 41.9027, 12.5, "landmark")
        composer = TransferComposer(mock_provider, None, strategy_timeout=5)
        result = await composer.compose(make_request(destination=nearby, max_walking_time=20))

        cheapest = next(o.route for o in result.outcomes if o.strategy == "cheapest")
        assert cheapest.modes == ["walking"]
        assert cheapest.total_cost == 0

        assert result.primary.modes == ["walking"]
        assert result.backup.lead_mode != "walking"
        assert result.backup.lead_mode in ("taxi", "rideshare")

    @pytest.mark.asyncio
    async def test_over_budget_still_returns_a_pair(self, make_request):
        async def pricey_taxi(request, provider):
            return build_route([taxi_segment(request.origin, request.destination)], "fastest", request)

        async def pricey_train(request, provider):
            segment = transit_segment("train", request.origin, request.destination, 36, 14.0, "Airport Express Train")
            return build_route([segment], "reliable", request)

        composer = TransferComposer(
            provider=None,
            strategies=(("fastest", pricey_taxi), ("reliable", pricey_train)),
        )
        request = make_request(max_cost=10)
        result = await composer.compose(request)

        assert {result.primary.strategy, result.backup.strategy} == {"fastest", "reliable"}
        for route in (result.primary, result.backup):
            assert route.total_cost > 10
            assert score_cost(route, request) == score_cost(route, make_request()) - 50


class TestCaching:
    @pytest.mark.asyncio
    async def test_cached_pair_served_without_strategies(self, mock_provider, memory_cache, make_request):
        request = make_request(max_walking_time=15)
        first = await TransferComposer(mock_provider, memory_cache).compose(request)

        calls = []

        async def tracking(request, provider):
            calls.append(request)
            return None

        second = await TransferComposer(
            mock_provider, memory_cache, strategies=(("fastest", tracking),)
        ).compose(request)

        assert calls == []
        assert second.from_cache
        assert second.primary == first.primary
        assert second.backup == first.backup
        assert second.analysis.confidence == first.analysis.confidence

    @pytest.mark.asyncio
    async def test_different_day_is_a_miss(self, mock_provider, memory_cache, make_request):
        composer = TransferComposer(mock_provider, memory_cache)
        await composer.compose(make_request(day_of_week="monday"))
        result = await composer.compose(make_request(day_of_week="tuesday"))
        assert not result.from_cache


class TestFailures:
    @pytest.mark.asyncio
    async def test_no_route_found(self, make_request):
        async def infeasible(request, provider):
            return None

        async def broken(request, provider):
            raise RuntimeError("boom")

        composer = TransferComposer(None, strategies=(("fastest", infeasible), ("hybrid", broken)))
        with pytest.raises(NoRouteFound) as exc:
            await composer.compose(make_request())
        assert exc.value.failures == {"fastest": "no candidate", "hybrid": "RuntimeError: boom"}

    @pytest.mark.asyncio
    async def test_partial_failure_still_composes(self, make_request, make_route):
        async def ok(request, provider):
            return make_route(("metro",), strategy="reliable", request=request)

        async def broken(request, provider):
            raise RuntimeError("boom")

        async def slow(request, provider):
            await asyncio.sleep(1)

        composer = TransferComposer(
            None,
            strategy_timeout=0.05,
            strategies=(("reliable", ok), ("broken", broken), ("slow", slow)),
        )
        result = await composer.compose(make_request())

        assert result.primary.strategy == "reliable"
        assert result.backup.strategy == "fallback"
        assert routes_use_different_strategies(result.primary, result.backup)
        errors = {o.strategy: o.error for o in result.outcomes}
        assert errors["reliable"] is None
        assert errors["broken"] == "RuntimeError: boom"
        assert errors["slow"].startswith("timed out")

    @pytest.mark.asyncio
    async def test_overall_timeout(self, make_request):
        async def slow(request, provider):
            await asyncio.sleep(1)

        composer = TransferComposer(None, strategy_timeout=5, strategies=(("slow", slow),))
        with pytest.raises(asyncio.TimeoutError):
            await composer.compose(make_request(), timeout=0.05)


class TestOutput:
    @pytest.mark.asyncio
    async def test_to_dict(self, mock_provider, make_request):
        result = await TransferComposer(mock_provider).compose(make_request())
        data = result.to_dict()
        assert set(data) == {"primary", "backup", "analysis", "meta"}
        assert data["primary"]["type"] == "primary"
        assert data["backup"]["type"] == "backup"
        assert data["meta"]["from_cache"] is False
        assert len(data["meta"]["strategies"]) == 6
