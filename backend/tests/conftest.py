import pytest

from tworoute.services.cache_service import MemoryRouteCache
from tworoute.services.transfer.models import (
    Coordinates,
    TransferConstraints,
    TransferPoint,
    TransferRequest,
    TransferTiming,
    TripContext,
)
from tworoute.services.transfer.segments import build_route, transit_segment
from tworoute.services.transport_provider import TransportProvider

PROVIDER_BY_MODE = {
    "walking": "Walking",
    "taxi": "City Taxi",
    "rideshare": "Uber",
    "metro": "City Metro",
    "bus": "City Bus",
    "train": "Regional Train",
    "tram": "City Tram",
    "ferry": "Harbour Ferry",
}


def make_point(name: str, lat: float, lng: float, point_type: str = "address", **extra) -> TransferPoint:
    return TransferPoint(name=name, type=point_type, coordinates=Coordinates(lat=lat, lng=lng), **extra)


@pytest.fixture()
def hotel():
    return make_point("Hotel Artemide", 41.9, 12.5, "hotel")


@pytest.fixture()
def airport():
    return make_point("Fiumicino Airport", 41.8, 12.25, "airport")


@pytest.fixture()
def make_request(hotel, airport):
    """Factory: make_request(max_walking_time=15, time_of_day="evening", ...)."""

    def _make(
        origin: TransferPoint | None = None,
        destination: TransferPoint | None = None,
        time_of_day: str = "afternoon",
        day_of_week: str = "monday",
        weather: str | None = None,
        arrival_by: str | None = None,
        **constraints,
    ) -> TransferRequest:
        return TransferRequest(
            origin=origin or hotel,
            destination=destination or airport,
            context=TripContext(
                trip_purpose="airport-transfer",
                time_of_day=time_of_day,
                day_of_week=day_of_week,
                weather_forecast=weather,
            ),
            timing=TransferTiming(arrival_by=arrival_by),
            constraints=TransferConstraints(**constraints),
        )

    return _make


@pytest.fixture()
def make_route(make_request):
    """Factory for routes with the given leg modes; aggregates can be overridden."""
    from dataclasses import replace

    def _make(modes=("taxi",), strategy="fastest", duration=30, cost=20.0, request=None, **overrides):
        request = request or make_request()
        legs = len(modes)
        segments = [
            transit_segment(
                mode,
                request.origin,
                request.destination,
                duration=duration // legs,
                fare=0.0 if mode == "walking" else round(cost / legs, 2),
                provider=PROVIDER_BY_MODE.get(mode, "Local Operator"),
            )
            for mode in modes
        ]
        route = build_route(segments, strategy, request)
        return replace(route, total_duration=duration, total_cost=cost, **overrides)

    return _make


def make_candidate(
    mode: str,
    provider: str,
    duration: int,
    price: float,
    score: float = 80,
    stops: list[dict] | None = None,
    direct: bool = False,
    frequency: str = "every 10 minutes",
) -> dict:
    """A transport candidate in the provider's wire shape."""
    return {
        "id": f"cand_{mode}_{duration}_{int(price * 100)}",
        "domain": "transport",
        "score": score,
        "data": {
            "mode": mode,
            "direct": direct,
            "route": {"stops": stops or []},
            "timing": {"duration": duration, "frequency": frequency, "operatingHours": "05:00-23:30"},
            "pricing": {"price": price, "currency": "USD", "ticketType": "Single Journey"},
            "details": {"provider": provider, "comfort": "standard", "accessibility": True},
            "realtime": {"trackingAvailable": False},
        },
    }


class FakeProvider:
    """Scripted provider: candidates per query mode, with every query recorded."""

    def __init__(self, responses: dict | None = None, error: Exception | None = None):
        self.responses = responses or {}
        self.error = error
        self.queries: list[dict] = []

    @property
    def is_mock(self) -> bool:
        return True

    async def query(self, query: dict) -> list[dict]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.responses.get(query["parameters"]["mode"], []))

    def queries_for(self, mode: str) -> list[dict]:
        return [q for q in self.queries if q["parameters"]["mode"] == mode]

    async def close(self):
        pass


@pytest.fixture()
def mock_provider():
    return TransportProvider(base_url="")


@pytest.fixture()
def memory_cache():
    return MemoryRouteCache(ttl=30 * 60, max_entries=16)
