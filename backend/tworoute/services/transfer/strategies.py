"""Candidate strategy generators: six independent ways of getting from A to B.

Each generator takes the full TransferRequest and the transport provider and
returns a complete TransferRoute, or None when the strategy has nothing to
offer. Generators may raise on provider failure; run_strategy is the boundary
that turns timeouts and errors into an empty StrategyOutcome so one bad
strategy never sinks the request.

Order matters downstream (dedup keeps the first of a similar pair):
    fastest → reliable → cheapest → simplest → hybrid → transit-only
"""

import asyncio
import logging
import time

from tworoute.exceptions import TransportProviderError
from tworoute.services.transfer.config import (
    MODE_RELIABILITY_RANK,
    ON_DEMAND_MODES,
    SCHEDULED_MODES,
    transfer_config,
)
from tworoute.services.transfer.geo import point_distance_m, walking_minutes
from tworoute.services.transfer.models import (
    Coordinates,
    StrategyOutcome,
    TransferPoint,
    TransferRequest,
    TransferRoute,
)
from tworoute.services.transfer.segments import (
    build_route,
    candidate_modes,
    rideshare_segment,
    route_from_candidate,
    taxi_segment,
    walking_segment,
)
from tworoute.services.transport_provider import TransportProvider, build_query

logger = logging.getLogger(__name__)

cfg = transfer_config


def _max_walk(request: TransferRequest, default: int) -> int:
    limit = request.constraints.max_walking_time
    return default if limit is None else limit


def _on_demand_builder(request: TransferRequest):
    """Taxi, or rideshare when taxis are avoided; None if both are avoided."""
    avoid = set(request.constraints.avoid_modes)
    if "taxi" not in avoid:
        return taxi_segment
    if "rideshare" not in avoid:
        return rideshare_segment
    return None


async def _find_direct(
    request: TransferRequest,
    provider: TransportProvider,
    modes: list[str],
    strategy: str,
) -> TransferRoute | None:
    """Zero-transfer connection using one of the given modes, if the provider knows one."""
    query = build_query(request, "direct", hard={"modes": modes})
    candidates = await provider.query(query)
    for candidate in candidates:
        legs = candidate_modes(candidate)
        if len(legs) == 1 and legs[0] in modes:
            return route_from_candidate(candidate, strategy, request)
    return None


# ---------- Strategies ----------


async def fastest_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    query = build_query(
        request,
        "fastest",
        hard={"maxWalkingTime": _max_walk(request, cfg.walking.fastest_default)},
        soft={"preferSpeed": True},
        weights={"duration": 0.7, "cost": 0.1, "comfort": 0.2},
    )
    candidates = await provider.query(query)
    if not candidates:
        return None
    return route_from_candidate(candidates[0], "fastest", request)


async def most_reliable_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    """Direct metro/train if there is one, else the most dependable scheduled combination."""
    direct = await _find_direct(request, provider, ["metro", "train"], "reliable")
    if direct:
        return direct

    query = build_query(
        request,
        "reliable",
        hard={"modes": sorted(SCHEDULED_MODES)},
        soft={"preferScheduled": True, "preferHighFrequency": True},
        weights={"reliability": 0.6, "duration": 0.3, "cost": 0.1},
    )
    candidates = await provider.query(query)

    def weakest_link(candidate: dict) -> int:
        vehicle = [m for m in candidate_modes(candidate) if m != "walking"]
        return min((MODE_RELIABILITY_RANK.get(m, 0) for m in vehicle), default=0)

    scheduled = [c for c in candidates if not set(candidate_modes(c)) & ON_DEMAND_MODES]
    if not scheduled:
        return None
    # Stable sort: provider order breaks ties
    best = sorted(scheduled, key=weakest_link, reverse=True)[0]
    return route_from_candidate(best, "reliable", request)


async def cheapest_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    """Walk when it is short enough, otherwise the lowest public-transport fare."""
    distance = point_distance_m(request.origin, request.destination)
    if walking_minutes(distance) <= _max_walk(request, cfg.walking.cheapest_default):
        segment = walking_segment(request.origin, request.destination, request.constraints.luggage)
        return build_route([segment], "cheapest", request)

    query = build_query(
        request,
        "cheapest",
        hard={"modes": sorted(SCHEDULED_MODES)},
        soft={"preferLowCost": True},
        weights={"cost": 0.8, "duration": 0.2},
    )
    candidates = [
        c for c in await provider.query(query)
        if not set(candidate_modes(c)) & ON_DEMAND_MODES
    ]
    if not candidates:
        return None
    cheapest = min(candidates, key=lambda c: float(c["data"]["pricing"]["price"]))
    return route_from_candidate(cheapest, "cheapest", request)


async def simplest_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    """Fewest transfers: direct taxi, then direct public transport, then one change."""
    builder = _on_demand_builder(request)
    if builder:
        segment = builder(request.origin, request.destination)
        return build_route([segment], "simplest", request)

    direct = await _find_direct(request, provider, ["metro", "bus", "train"], "simplest")
    if direct:
        return direct

    query = build_query(request, "one-transfer", hard={"maxTransfers": 1})
    for candidate in await provider.query(query):
        vehicle = [m for m in candidate_modes(candidate) if m != "walking"]
        if len(vehicle) <= 2 and not set(vehicle) & ON_DEMAND_MODES:
            return route_from_candidate(candidate, "simplest", request)
    return None


async def _better_pickup_point(request: TransferRequest, provider: TransportProvider) -> TransferPoint | None:
    """A hub or through-street a short walk away that beats being picked up at the door."""
    limit = min(_max_walk(request, cfg.walking.pickup_max), cfg.walking.pickup_max)
    try:
        candidates = await provider.query(build_query(request, "pickup", hard={"maxWalkingTime": limit}))
    except TransportProviderError as e:
        logger.warning(f"Pickup-point lookup failed, using door-to-door taxi: {e}")
        return None

    direct_distance = point_distance_m(request.origin, request.destination)
    for candidate in candidates:
        spot = ((candidate.get("data") or {}).get("route") or {}).get("to") or {}
        if spot.get("lat") is None or spot.get("lng") is None:
            continue
        point_type = spot.get("type", "landmark")
        point = TransferPoint(
            name=spot.get("name") or "Pickup point",
            type=point_type if point_type in ("station", "stop", "landmark", "address") else "landmark",
            coordinates=Coordinates(lat=float(spot["lat"]), lng=float(spot["lng"])),
            indoor_waiting=point_type == "station",
        )
        if point.coordinates == request.origin.coordinates:
            continue
        if walking_minutes(point_distance_m(request.origin, point)) > limit:
            continue
        if direct_distance - point_distance_m(point, request.destination) >= cfg.walking.pickup_min_gain_m:
            return point
    return None


async def hybrid_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    """Walk to a better pickup point, then taxi; door-to-door taxi when there is none."""
    builder = _on_demand_builder(request)
    if builder is None:
        return None

    pickup = await _better_pickup_point(request, provider)
    if pickup:
        segments = [
            walking_segment(request.origin, pickup, request.constraints.luggage),
            builder(pickup, request.destination),
        ]
    else:
        segments = [builder(request.origin, request.destination)]
    return build_route(segments, "hybrid", request)


async def transit_only_route(request: TransferRequest, provider: TransportProvider) -> TransferRoute | None:
    """Scheduled public transport only, with as little walking as possible."""
    query = build_query(
        request,
        "transit",
        hard={"modes": sorted(SCHEDULED_MODES), "excludeModes": sorted(ON_DEMAND_MODES)},
        soft={"minimizeWalking": True},
    )
    candidates = [
        c for c in await provider.query(query)
        if not set(candidate_modes(c)) & ON_DEMAND_MODES
        and set(candidate_modes(c)) & SCHEDULED_MODES
    ]
    if not candidates:
        return None
    routes = [route_from_candidate(c, "transit-only", request) for c in candidates]
    return min(routes, key=lambda r: (r.walking_required, r.total_duration))


STRATEGIES = (
    ("fastest", fastest_route),
    ("reliable", most_reliable_route),
    ("cheapest", cheapest_route),
    ("simplest", simplest_route),
    ("hybrid", hybrid_route),
    ("transit-only", transit_only_route),
)


# ---------- Runner ----------


async def run_strategy(
    name: str,
    generator,
    request: TransferRequest,
    provider: TransportProvider,
    timeout: float,
) -> StrategyOutcome:
    """Run one generator under a deadline; failures become an empty outcome."""
    start_time = time.monotonic()
    route = None
    error = None
    try:
        route = await asyncio.wait_for(generator(request, provider), timeout=timeout)
    except asyncio.TimeoutError:
        error = f"timed out after {timeout}s"
        logger.warning(f"Strategy {name} {error}, dropping it")
    except TransportProviderError as e:
        error = f"provider failure: {e}"
        logger.warning(f"Strategy {name} skipped: {error}")
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        logger.error(f"Strategy {name} failed: {error}")

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    if route is None and error is None:
        logger.debug(f"Strategy {name} found no candidate")
    return StrategyOutcome(strategy=name, route=route, error=error, elapsed_ms=elapsed_ms)


async def generate_candidates(
    request: TransferRequest,
    provider: TransportProvider,
    timeout: float,
    strategies=STRATEGIES,
) -> tuple[list[TransferRoute], list[StrategyOutcome]]:
    """Run every strategy concurrently; routes come back in strategy order."""
    outcomes = await asyncio.gather(
        *(run_strategy(name, generator, request, provider, timeout) for name, generator in strategies)
    )
    routes = [o.route for o in outcomes if o.route is not None]
    return routes, list(outcomes)
