"""Transport-data provider client: structured route queries with retries and a mock mode."""

import asyncio
import hashlib
import logging
import random

import httpx

from tworoute.config import settings
from tworoute.exceptions import TransportProviderError
from tworoute.services.transfer.geo import driving_minutes, haversine_m, taxi_fare, walking_minutes
from tworoute.services.transfer.models import TransferRequest

logger = logging.getLogger(__name__)

PUBLIC_MODES = {"metro", "bus", "train", "tram", "ferry"}

QUERY_MODES = ("fastest", "direct", "reliable", "cheapest", "one-transfer", "transit", "pickup")

# Reliability rank used to order "reliable" mock results
_RELIABLE_ORDER = {"train": 0, "metro": 0, "tram": 1, "ferry": 2, "bus": 3, "taxi": 4, "rideshare": 4}


def build_query(
    request: TransferRequest,
    mode: str,
    hard: dict | None = None,
    soft: dict | None = None,
    weights: dict | None = None,
) -> dict:
    """Structured transport query understood by the provider."""
    o = request.origin.coordinates
    d = request.destination.coordinates
    return {
        "domain": "transport",
        "parameters": {
            "origin": f"{o.lat},{o.lng}",
            "destination": f"{d.lat},{d.lng}",
            "departure_time": request.departure,
            "mode": mode,
        },
        "constraints": {
            "hard": {
                "avoidModes": list(request.constraints.avoid_modes),
                **(hard or {}),
            },
            "soft": soft or {},
        },
        "filters": ["available", "operating"],
        "scoring": {
            "weights": weights or {"duration": 0.5, "cost": 0.3, "comfort": 0.2},
            "penalties": {},
            "bonuses": {},
        },
    }


def _parse_latlng(value: str) -> tuple[float, float]:
    try:
        lat, lng = value.split(",")
        return float(lat), float(lng)
    except (AttributeError, ValueError) as e:
        raise TransportProviderError(f"Invalid coordinate string {value!r}") from e


class TransportProvider:
    """Adapter for the external transport-data service."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = settings.transport_provider_base_url if base_url is None else base_url
        self._api_key = settings.transport_provider_api_key if api_key is None else api_key
        self._timeout = timeout or settings.transport_provider_timeout_seconds
        self._max_attempts = max_attempts or settings.transport_provider_max_attempts
        self._semaphore = asyncio.Semaphore(concurrency or settings.transport_provider_concurrency)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._use_mock = not self._base_url

    @property
    def is_mock(self) -> bool:
        return self._use_mock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"User-Agent": "TwoRoute/0.1"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def query(self, query: dict) -> list[dict]:
        """Run a transport query and return scored candidates, best first."""
        if self._use_mock:
            return self._generate_mock_candidates(query)

        async with self._semaphore:
            client = await self._get_client()
            for attempt in range(self._max_attempts):
                last_attempt = attempt == self._max_attempts - 1
                try:
                    resp = await client.post("/v1/transport/search", json=query)
                    if resp.status_code == 429 and not last_attempt:
                        await asyncio.sleep(2 ** attempt)
                        continue
                    resp.raise_for_status()
                    data = resp.json()
                    candidates = data.get("candidates", [])
                    if not isinstance(candidates, list):
                        raise TransportProviderError("Provider returned non-list candidates")
                    return sorted(candidates, key=lambda c: c.get("score") or 0, reverse=True)
                except httpx.HTTPStatusError as e:
                    logger.error(f"Transport provider error: {e.response.status_code}")
                    if last_attempt or e.response.status_code < 500:
                        raise TransportProviderError(
                            f"Transport provider returned {e.response.status_code}"
                        ) from e
                except httpx.TimeoutException as e:
                    logger.error(f"Transport provider timed out: {e}")
                    raise TransportProviderError(f"Transport provider timed out: {e}") from e
                except httpx.RequestError as e:
                    logger.error(f"Transport provider request error: {e}")
                    if last_attempt:
                        raise TransportProviderError(f"Transport provider unreachable: {e}") from e
                except ValueError as e:
                    raise TransportProviderError(f"Transport provider sent invalid JSON: {e}") from e
                await asyncio.sleep(2 ** attempt)

        raise TransportProviderError("Transport provider retries exhausted")

    # --- Mock data generation for demo mode ---

    def _generate_mock_candidates(self, query: dict) -> list[dict]:
        """Deterministic candidates for development and tests."""
        params = query.get("parameters", {})
        hard = query.get("constraints", {}).get("hard", {})
        mode = params.get("mode", "fastest")
        origin = _parse_latlng(params.get("origin"))
        destination = _parse_latlng(params.get("destination"))

        seed_str = f"{params.get('origin')}{params.get('destination')}{mode}"
        seed = int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        distance = haversine_m(*origin, *destination)

        if mode == "pickup":
            return self._mock_pickup_points(origin, destination, distance)

        catalogue = self._mock_catalogue(origin, destination, distance, rng)
        avoid = set(hard.get("avoidModes") or [])
        allowed = set(hard.get("modes") or [])
        max_walk = hard.get("maxWalkingTime")

        def modes_of(c: dict) -> set[str]:
            return {s.get("mode") for s in c["data"]["route"]["stops"][:-1]} or {c["data"]["mode"]}

        def walking_of(c: dict) -> int:
            return sum(s.get("duration", 0) for s in c["data"]["route"]["stops"][:-1] if s.get("mode") == "walking")

        pool = [c for c in catalogue if not (modes_of(c) & avoid)]
        if max_walk is not None:
            pool = [c for c in pool if walking_of(c) <= max_walk]

        if mode == "direct":
            pool = [c for c in pool if c["data"]["direct"] and (not allowed or c["data"]["mode"] in allowed)]
        elif mode == "one-transfer":
            pool = [c for c in pool if len(modes_of(c) - {"walking"}) == 2]
        elif mode in ("cheapest", "transit", "reliable"):
            pool = [c for c in pool if not (modes_of(c) & {"taxi", "rideshare"})]

        if mode == "cheapest":
            pool.sort(key=lambda c: c["data"]["pricing"]["price"])
        elif mode == "transit":
            pool.sort(key=lambda c: (walking_of(c), c["data"]["timing"]["duration"]))
        elif mode == "reliable":
            pool.sort(key=lambda c: (_RELIABLE_ORDER.get(c["data"]["mode"], 5), c["data"]["timing"]["duration"]))
        else:
            pool.sort(key=lambda c: c["data"]["timing"]["duration"])

        for rank, c in enumerate(pool):
            c["score"] = max(50, 92 - rank * 6 - rng.randint(0, 3))
        return pool

    @staticmethod
    def _stop(name: str, point: tuple[float, float], mode: str | None = None, duration: int | None = None, **extra) -> dict:
        stop = {"name": name, "lat": round(point[0], 6), "lng": round(point[1], 6), "type": "stop"}
        if mode:
            stop["mode"] = mode
        if duration is not None:
            stop["duration"] = duration
        stop.update(extra)
        return stop

    @staticmethod
    def _along(origin: tuple[float, float], destination: tuple[float, float], fraction: float) -> tuple[float, float]:
        return (
            origin[0] + (destination[0] - origin[0]) * fraction,
            origin[1] + (destination[1] - origin[1]) * fraction,
        )

    def _candidate(
        self,
        mode: str,
        provider: str,
        stops: list[dict],
        price: float,
        frequency: str,
        hours: str,
        comfort: str = "standard",
        tracking: bool = False,
        direct: bool = False,
    ) -> dict:
        duration = sum(s.get("duration", 0) + s.get("waitTime", 0) for s in stops[:-1])
        return {
            "id": f"mock_{mode}_{len(stops)}_{int(price * 100)}",
            "domain": "transport",
            "score": 0,
            "data": {
                "mode": mode,
                "direct": direct,
                "route": {"stops": stops},
                "timing": {"duration": duration, "frequency": frequency, "operatingHours": hours},
                "pricing": {"price": price, "currency": settings.default_currency, "ticketType": "Single Journey"},
                "details": {
                    "provider": provider,
                    "comfort": comfort,
                    "accessibility": True,
                    "luggage": "allowed",
                    "wifi": mode == "train",
                },
                "realtime": {"status": "On time", "trackingAvailable": tracking},
            },
        }

    def _transit(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        distance: int,
        mode: str,
        provider: str,
        walk_in_m: int,
        walk_out_m: int,
        m_per_min: float,
        price: float,
        frequency: str,
        hours: str,
        wait: int,
    ) -> dict:
        board_at = min(0.3, walk_in_m / distance)
        alight_at = max(0.7, 1 - walk_out_m / distance)
        board = self._along(origin, destination, board_at)
        alight = self._along(origin, destination, alight_at)
        ride = max(2, round(distance * (alight_at - board_at) / m_per_min))
        stops = [
            self._stop("Origin", origin, "walking", walking_minutes(haversine_m(*origin, *board))),
            self._stop(f"{provider} boarding stop", board, mode, ride, waitTime=wait, indoor_waiting=mode in ("metro", "train")),
            self._stop(f"{provider} alighting stop", alight, "walking", walking_minutes(haversine_m(*alight, *destination))),
            self._stop("Destination", destination),
        ]
        return self._candidate(mode, provider, stops, price, frequency, hours)

    def _mock_catalogue(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        distance: int,
        rng: random.Random,
    ) -> list[dict]:
        drive = driving_minutes(distance) + rng.randint(0, 3)
        fare = taxi_fare(distance)
        catalogue = [
            self._candidate(
                "taxi", "City Taxi",
                [self._stop("Origin", origin, "taxi", drive), self._stop("Destination", destination)],
                fare, "on-demand", "24/7", tracking=True, direct=True,
            ),
            self._candidate(
                "rideshare", "Uber",
                [self._stop("Origin", origin, "rideshare", drive, waitTime=4), self._stop("Destination", destination)],
                round(fare * 0.9, 2), "on-demand", "24/7", tracking=True, direct=True,
            ),
        ]

        if distance > 1200:
            catalogue.append(self._transit(
                origin, destination, distance, "metro", "City Metro", 500, 400, 600,
                2.5, "every 6 minutes", "05:30-00:30", wait=3,
            ))
        if distance > 2000:
            catalogue.append(self._transit(
                origin, destination, distance, "bus", "City Bus", 200, 150, 300,
                1.8, "every 12 minutes", "05:00-23:30", wait=6,
            ))
        if distance > 3000:
            interchange = self._along(origin, destination, 0.45)
            board = self._along(origin, destination, min(0.04, 250 / distance))
            stops = [
                self._stop("Origin", origin, "walking", walking_minutes(haversine_m(*origin, *board))),
                self._stop("City Bus stop", board, "bus", max(2, round(distance * 0.41 / 300)), waitTime=6),
                self._stop("Interchange", interchange, "metro", max(2, round(distance * 0.55 / 600)), waitTime=3),
                self._stop("Destination", destination),
            ]
            catalogue.append(self._candidate(
                "bus", "City Bus + Metro", stops, 3.2, "every 12 minutes", "05:30-23:30",
            ))
        if distance > 8000:
            catalogue.append(self._transit(
                origin, destination, distance, "train", "Regional Train", 700, 600, 900,
                9.5, "every 20 minutes", "05:00-23:00", wait=8,
            ))
            if rng.random() < 0.6:
                ride = max(5, round(distance / 1000)) + 6
                catalogue.append(self._candidate(
                    "train", "Airport Express Train",
                    [self._stop("Origin", origin, "train", ride, waitTime=7), self._stop("Destination", destination)],
                    14.0, "every 15 minutes", "05:30-23:30", comfort="premium", tracking=True, direct=True,
                ))
        return catalogue

    def _mock_pickup_points(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        distance: int,
    ) -> list[dict]:
        if distance < 1500:
            return []
        points = []
        for name, point_type, metres in (("Main Street taxi rank", "landmark", 450), ("Central Station forecourt", "station", 900)):
            fraction = min(0.5, metres / distance)
            point = self._along(origin, destination, fraction)
            walk = walking_minutes(haversine_m(*origin, *point))
            points.append({
                "id": f"pickup_{point_type}",
                "domain": "transport",
                "score": 80 if point_type == "landmark" else 70,
                "data": {
                    "mode": "walking",
                    "route": {
                        "to": {"name": name, "type": point_type, "lat": round(point[0], 6), "lng": round(point[1], 6)},
                        "stops": [],
                    },
                    "timing": {"duration": walk, "operatingHours": "24/7"},
                    "pricing": {"price": 0.0, "currency": settings.default_currency},
                    "details": {"provider": "Walking"},
                },
            })
        return points

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
