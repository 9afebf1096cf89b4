import random

import pytest

from tworoute.exceptions import NoRouteFound
from tworoute.services.transfer.selection import (
    fallback_route,
    provider_category,
    routes_use_different_strategies,
    select_pair,
)


class TestProviderCategory:
    @pytest.mark.parametrize("name,category", [
        ("City Taxi", "rideshare"),
        ("Uber", "rideshare"),
        ("Taxi Service", "rideshare"),
        ("City Metro", "metro"),
        ("NYC Subway", "metro"),
        ("City Bus", "bus"),
        ("City Bus + Metro", "metro"),
        ("Airport Express Train", "train"),
        ("Harbour Ferry", "other"),
        ("", "other"),
    ])
    def test_substring_match(self, name, category):
        assert provider_category(name) == category


class TestDiversity:
    def test_identical_shape_is_not_distinct(self, make_route):
        a = make_route(("taxi",), strategy="fastest")
        b = make_route(("taxi",), strategy="simplest")
        assert not routes_use_different_strategies(a, b)

    def test_lead_mode(self, make_route):
        assert routes_use_different_strategies(make_route(("taxi",)), make_route(("metro",)))

    def test_complexity(self, make_route):
        assert routes_use_different_strategies(make_route(("taxi",)), make_route(("taxi", "taxi")))

    def test_provider_category(self, make_route):
        taxi = make_route(("taxi",))
        other = make_route(("taxi",))
        other.segments[0].provider = "Harbour Water Taxi Co"
        assert not routes_use_different_strategies(taxi, other)
        other.segments[0].provider = "Private Driver"
        assert routes_use_different_strategies(taxi, other)


class TestSelectPair:
    def test_empty_raises(self, make_request):
        with pytest.raises(NoRouteFound):
            select_pair([], make_request())

    def test_single_candidate_gets_fallback_backup(self, make_route, make_request):
        only = make_route(("metro",), strategy="reliable", score=90)
        primary, backup = select_pair([only], make_request())
        assert primary.id == only.id
        assert primary.type == "primary"
        assert backup.strategy == "fallback"
        assert backup.type == "backup"

    def test_first_distinct_candidate(self, make_route, make_request):
        ranked = [
            make_route(("taxi",), strategy="fastest", score=100),
            make_route(("taxi",), strategy="simplest", score=99),
            make_route(("walking", "taxi"), strategy="hybrid", score=96),
            make_route(("bus",), strategy="cheapest", score=90),
        ]
        primary, backup = select_pair(ranked, make_request())
        assert primary.strategy == "fastest"
        assert backup.strategy == "hybrid"

    def test_runner_up_when_nothing_distinct(self, make_route, make_request):
        ranked = [
            make_route(("taxi",), strategy="fastest", score=100),
            make_route(("taxi",), strategy="simplest", score=98),
        ]
        primary, backup = select_pair(ranked, make_request())
        assert backup.strategy == "simplest"
        assert backup.type == "backup"

    def test_inputs_are_not_retagged(self, make_route, make_request):
        ranked = [make_route(("taxi",), score=100), make_route(("bus",), score=90)]
        select_pair(ranked, make_request())
        assert ranked[1].type == "primary"

    @pytest.mark.parametrize("seed", range(25))
    def test_diverse_backup_whenever_one_exists(self, make_route, make_request, seed):
        rng = random.Random(seed)
        shapes = [("taxi",), ("rideshare",), ("metro",), ("walking", "taxi"), ("walking", "metro", "walking"), ("bus",)]
        ranked = sorted(
            (make_route(rng.choice(shapes), score=rng.randint(50, 110)) for _ in range(rng.randint(2, 7))),
            key=lambda r: r.score,
            reverse=True,
        )
        primary, backup = select_pair(ranked, make_request())

        distinct = [r for r in ranked[1:] if routes_use_different_strategies(ranked[0], r)]
        assert primary.id == ranked[0].id
        assert primary.score >= backup.score
        if distinct:
            assert routes_use_different_strategies(primary, backup)
            assert backup.id == distinct[0].id
        else:
            assert backup.id == ranked[1].id


class TestFallbackRoute:
    def test_always_available_taxi(self, make_request):
        route = fallback_route(make_request())
        assert route.modes == ["taxi"]
        assert route.total_duration == 20
        assert route.total_cost == 25.0
        assert route.currency == "USD"
        assert route.confidence == 70
        assert route.accessibility
        assert route.punctuality == "reliable"
        assert route.capacity == "unlimited"
        assert (route.operating_hours.start, route.operating_hours.end) == ("00:00", "23:59")
        assert route.instructions[0].action == "Hail taxi"
        assert route.instructions[0].alternatives == ["Uber", "Lyft", "Local taxi companies"]
        est = route.estimated_time
        assert (est.optimistic, est.realistic, est.pessimistic) == (17, 20, 30)
