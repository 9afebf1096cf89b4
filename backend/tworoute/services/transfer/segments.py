"""Segment builders: atomic legs and the aggregate fields of a route built from them."""

import logging
import uuid

from tworoute.config import settings
from tworoute.exceptions import TransportProviderError
from tworoute.services.transfer.config import (
    ALL_MODES,
    ON_DEMAND_MODES,
    SCHEDULED_MODES,
    transfer_config,
)
from tworoute.services.transfer.geo import (
    driving_minutes,
    point_distance_m,
    round_half_up,
    taxi_fare,
    walking_minutes,
)
from tworoute.services.transfer.models import (
    Coordinates,
    OperatingHours,
    ProviderInfo,
    RouteInstruction,
    TimeEstimate,
    TransferPoint,
    TransferRequest,
    TransferRoute,
    TransferSegment,
    complexity_for,
    total_duration,
)

logger = logging.getLogger(__name__)

cfg = transfer_config

ALWAYS_OPEN = "24/7"

# Capacity per mode; a route is only as roomy as its tightest leg
_CAPACITY_BY_MODE = {
    "walking": "unlimited",
    "taxi": "unlimited",
    "rideshare": "unlimited",
    "metro": "high",
    "train": "high",
    "bus": "medium",
    "tram": "medium",
    "ferry": "medium",
}
_CAPACITY_ORDER = ["low", "medium", "high", "unlimited"]

_COMFORT_CLASSES = ("basic", "standard", "premium")

# Provider-side aliases for our mode names
_MODE_ALIASES = {
    "walk": "walking",
    "subway": "metro",
    "underground": "metro",
    "rail": "train",
    "light_rail": "tram",
    "cab": "taxi",
    "uber": "rideshare",
    "lyft": "rideshare",
}


def _segment_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def normalize_mode(mode: str | None) -> str:
    """Map a provider mode string onto one of our modes (unknown = bus)."""
    if not mode:
        return "bus"
    mode = mode.lower().strip()
    mode = _MODE_ALIASES.get(mode, mode)
    return mode if mode in ALL_MODES else "bus"


# ---------- Atomic legs ----------


def walking_segment(
    start: TransferPoint,
    end: TransferPoint,
    luggage: str | None = None,
) -> TransferSegment:
    distance = point_distance_m(start, end)
    duration = walking_minutes(distance)
    warnings = []
    if duration > cfg.walking.long_walk_warning:
        warnings = ["Long walking distance", "Consider weather conditions"]

    return TransferSegment(
        id=_segment_id("walk"),
        mode="walking",
        start_point=start,
        end_point=end,
        duration=duration,
        provider="Walking",
        fare=0.0,
        operating_hours=ALWAYS_OPEN,
        weather_dependent=True,
        accessibility=True,
        luggage_friendly=luggage != "heavy",
        instruction=f"Walk {distance}m ({duration} minutes) from {start.name} to {end.name}",
        distance_m=distance,
        warnings=warnings,
    )


def taxi_segment(start: TransferPoint, end: TransferPoint) -> TransferSegment:
    distance = point_distance_m(start, end)
    return TransferSegment(
        id=_segment_id("taxi"),
        mode="taxi",
        start_point=start,
        end_point=end,
        duration=driving_minutes(distance),
        provider="Taxi Service",
        fare=taxi_fare(distance),
        operating_hours=ALWAYS_OPEN,
        weather_dependent=False,
        accessibility=True,
        luggage_friendly=True,
        instruction=f"Take taxi from {start.name} to {end.name}",
        frequency="on-demand",
        distance_m=distance,
    )


def rideshare_segment(start: TransferPoint, end: TransferPoint) -> TransferSegment:
    distance = point_distance_m(start, end)
    return TransferSegment(
        id=_segment_id("rideshare"),
        mode="rideshare",
        start_point=start,
        end_point=end,
        duration=driving_minutes(distance),
        wait_time=cfg.speeds.rideshare_pickup_wait,
        provider="Uber / rideshare",
        fare=round(taxi_fare(distance) * cfg.speeds.rideshare_discount, 2),
        operating_hours=ALWAYS_OPEN,
        weather_dependent=False,
        accessibility=True,
        luggage_friendly=True,
        instruction=f"Book a rideshare from {start.name} to {end.name}",
        frequency="on-demand",
        distance_m=distance,
    )


def transit_segment(
    mode: str,
    start: TransferPoint,
    end: TransferPoint,
    duration: int,
    fare: float,
    provider: str,
    operating_hours: str = "05:00-01:00",
    line: str | None = None,
    frequency: str | None = None,
    wait_time: int | None = None,
    accessibility: bool = True,
    luggage_friendly: bool = True,
) -> TransferSegment:
    mode = normalize_mode(mode)
    service = f"{provider} {line}" if line else provider
    return TransferSegment(
        id=_segment_id(mode),
        mode=mode,
        start_point=start,
        end_point=end,
        duration=duration,
        wait_time=wait_time,
        provider=provider,
        line=line,
        fare=fare,
        operating_hours=operating_hours,
        weather_dependent=mode == "walking",
        accessibility=accessibility,
        luggage_friendly=luggage_friendly,
        instruction=f"Take {service} from {start.name} to {end.name}",
        frequency=frequency,
        distance_m=point_distance_m(start, end),
    )


# ---------- Provider candidates ----------


def _point_from_stop(stop: dict, fallback: TransferPoint) -> TransferPoint:
    lat = stop.get("lat")
    lng = stop.get("lng")
    if lat is None or lng is None:
        coords = stop.get("coordinates") or {}
        lat, lng = coords.get("lat"), coords.get("lng")
    if lat is None or lng is None:
        return fallback

    point_type = stop.get("type", "stop")
    return TransferPoint(
        name=stop.get("name") or "Stop",
        type=point_type if point_type in ("station", "stop", "airport", "landmark", "hotel", "address") else "stop",
        coordinates=Coordinates(lat=float(lat), lng=float(lng)),
        address=stop.get("address"),
        platform=stop.get("platform"),
        terminal=stop.get("terminal"),
        gate=stop.get("gate"),
        indoor_waiting=bool(stop.get("indoor_waiting", False)),
    )


def _split_evenly(total: int, parts: int) -> list[int]:
    base, extra = divmod(total, parts)
    return [base + (1 if i < extra else 0) for i in range(parts)]


def segments_from_candidate(candidate: dict, request: TransferRequest) -> list[TransferSegment]:
    """Convert one provider transport candidate into ordered segments.

    Multi-stop candidates become one segment per consecutive stop pair. A stop
    may carry the mode, duration and wait of the leg that starts at it;
    without per-leg durations the candidate's duration is shared evenly, and
    the fare is always shared across the non-walking legs. Anything else
    becomes a single origin-to-destination segment.
    """
    try:
        data = candidate["data"]
        timing = data["timing"]
        pricing = data["pricing"]
        details = data.get("details") or {}
        stops = (data.get("route") or {}).get("stops") or []
        if not all(isinstance(stop, dict) for stop in stops):
            raise TypeError("stops must be objects")

        mode = normalize_mode(data.get("mode"))
        duration = round_half_up(float(timing["duration"]))
        price = float(pricing["price"])
        provider = details.get("provider") or "Public Transport"
        hours = timing.get("operatingHours") or "05:00-01:00"
        accessible = bool(details.get("accessibility", True))
        luggage_ok = details.get("luggage") != "restricted"
    except (KeyError, TypeError, ValueError) as e:
        raise TransportProviderError(f"Malformed transport candidate: {e}") from e

    if len(stops) < 2:
        return [
            TransferSegment(
                id=_segment_id("main"),
                mode=mode,
                start_point=request.origin,
                end_point=request.destination,
                duration=duration,
                wait_time=timing.get("waitTime"),
                provider=provider,
                line=details.get("line"),
                fare=price,
                ticket_type=pricing.get("ticketType"),
                operating_hours=hours,
                weather_dependent=mode == "walking",
                accessibility=accessible,
                luggage_friendly=luggage_ok,
                instruction=f"Take {provider} from {request.origin.name} to {request.destination.name}",
                frequency=timing.get("frequency"),
                distance_m=point_distance_m(request.origin, request.destination),
            )
        ]

    legs = len(stops) - 1
    points = (
        [request.origin]
        + [_point_from_stop(stop, request.destination) for stop in stops[1:-1]]
        + [request.destination]
    )
    leg_modes = [normalize_mode(stops[i].get("mode") or mode) for i in range(legs)]
    if all(isinstance(stops[i].get("duration"), (int, float)) for i in range(legs)):
        durations = [round_half_up(stops[i]["duration"]) for i in range(legs)]
    else:
        durations = _split_evenly(duration, legs)

    paying = [i for i, m in enumerate(leg_modes) if m != "walking"] or list(range(legs))
    fare_each = round(price / len(paying), 2)
    fares = [0.0] * legs
    for i in paying:
        fares[i] = fare_each
    fares[paying[-1]] = round(price - fare_each * (len(paying) - 1), 2)

    segments = []
    for i in range(legs):
        start, end = points[i], points[i + 1]
        leg_mode = leg_modes[i]
        if leg_mode == "walking":
            instruction = f"Walk from {start.name} to {end.name}"
            leg_provider = "Walking"
        else:
            instruction = f"Take {provider} from {start.name} to {end.name}"
            leg_provider = provider
        segments.append(
            TransferSegment(
                id=_segment_id(f"segment_{i}"),
                mode=leg_mode,
                start_point=start,
                end_point=end,
                duration=durations[i],
                wait_time=stops[i].get("waitTime"),
                provider=leg_provider,
                line=stops[i].get("line"),
                fare=fares[i],
                ticket_type=pricing.get("ticketType") if leg_mode != "walking" else None,
                operating_hours=ALWAYS_OPEN if leg_mode == "walking" else hours,
                weather_dependent=leg_mode == "walking",
                accessibility=accessible,
                luggage_friendly=luggage_ok,
                instruction=instruction,
                frequency=None if leg_mode == "walking" else timing.get("frequency"),
                distance_m=point_distance_m(start, end),
            )
        )
    return segments


def candidate_modes(candidate: dict) -> list[str]:
    """Modes a candidate would use, without building segments."""
    data = candidate.get("data") or {}
    mode = data.get("mode")
    stops = (data.get("route") or {}).get("stops") or []
    if len(stops) < 2:
        return [normalize_mode(mode)]
    return [normalize_mode(stops[i].get("mode") or mode) for i in range(len(stops) - 1)]


def route_from_candidate(candidate: dict, strategy: str, request: TransferRequest) -> TransferRoute:
    """Convert a provider candidate into a complete route."""
    segments = segments_from_candidate(candidate, request)
    data = candidate["data"]
    details = data.get("details") or {}
    realtime = data.get("realtime") or {}
    comfort = details.get("comfort")

    return build_route(
        segments,
        strategy,
        request,
        confidence=candidate.get("score") or cfg.default_confidence,
        currency=data["pricing"].get("currency"),
        frequency=data["timing"].get("frequency"),
        comfort=comfort if comfort in _COMFORT_CLASSES else None,
        tracking=bool(realtime.get("trackingAvailable", False)),
        provider_name=details.get("provider"),
    )


# ---------- Route aggregates ----------


def _to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.strip().split(":")
    return int(hours) * 60 + int(minutes)


def _window(hours: str) -> tuple[int, int] | None:
    """Parse "HH:MM-HH:MM" to (start, end) minutes; None = always open."""
    if not hours or hours.strip().lower() in (ALWAYS_OPEN, "24h", "always"):
        return None
    try:
        start_s, end_s = hours.split("-")
        start, end = _to_minutes(start_s), _to_minutes(end_s)
    except ValueError:
        logger.debug(f"Unparseable operating hours {hours!r}, treating as always open")
        return None
    if end <= start:
        end += 24 * 60  # runs past midnight
    return start, end


def _fmt(minutes: int) -> str:
    minutes %= 24 * 60
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def operating_envelope(segments: list[TransferSegment]) -> OperatingHours:
    """Window in which every segment of the route is running."""
    windows = [w for w in (_window(s.operating_hours) for s in segments) if w]
    if not windows:
        return OperatingHours(start="00:00", end="23:59")
    start = max(w[0] for w in windows)
    end = min(w[1] for w in windows)
    if end <= start:
        # No common window; report the most restrictive leg
        start, end = min(windows, key=lambda w: w[1] - w[0])
    return OperatingHours(start=_fmt(start), end=_fmt(end))


def _capacity(segments: list[TransferSegment]) -> str:
    ranks = [_CAPACITY_ORDER.index(_CAPACITY_BY_MODE.get(s.mode, "medium")) for s in segments]
    return _CAPACITY_ORDER[min(ranks)] if ranks else "unlimited"


def _punctuality(modes: set[str]) -> str:
    vehicle = modes - {"walking"}
    if "bus" in vehicle:
        return "variable"
    if vehicle & ON_DEMAND_MODES or "ferry" in vehicle:
        return "reliable"
    return "very-reliable"


def _luggage(segments: list[TransferSegment], walking: int) -> str:
    if any(not s.luggage_friendly for s in segments):
        return "difficult"
    if walking > 10 or len(segments) > 2:
        return "manageable"
    return "easy"


def _frequency(segments: list[TransferSegment]) -> str:
    scheduled = [s for s in segments if s.mode in SCHEDULED_MODES]
    if not scheduled:
        return "on-demand"
    return scheduled[0].frequency or "variable"


def build_route(
    segments: list[TransferSegment],
    strategy: str,
    request: TransferRequest,
    confidence: float | None = None,
    currency: str | None = None,
    frequency: str | None = None,
    comfort: str | None = None,
    tracking: bool | None = None,
    provider_name: str | None = None,
) -> TransferRoute:
    """Assemble a route and derive every aggregate field from its segments."""
    modes = {s.mode for s in segments}
    duration = total_duration(segments)
    walking = sum(s.duration for s in segments if s.mode == "walking")

    if comfort is None:
        comfort = "basic" if modes == {"walking"} else "standard"

    return TransferRoute(
        id=f"route_{strategy}_{uuid.uuid4().hex[:8]}",
        strategy=strategy,
        confidence=confidence if confidence is not None else cfg.default_confidence,
        segments=segments,
        total_duration=duration,
        total_distance=sum(s.distance_m for s in segments),
        total_cost=round(sum(s.fare for s in segments), 2),
        currency=currency or settings.default_currency,
        operating_hours=operating_envelope(segments),
        frequency=frequency or _frequency(segments),
        weather_sensitive=any(s.weather_dependent for s in segments),
        capacity=_capacity(segments),
        complexity=complexity_for(len(segments)),
        walking_required=walking,
        luggage=_luggage(segments, walking),
        accessibility=all(s.accessibility for s in segments),
        comfort=comfort,
        punctuality=_punctuality(modes),
        tracking_available=tracking if tracking is not None else bool(modes & ON_DEMAND_MODES),
        instructions=basic_instructions(segments),
        estimated_time=TimeEstimate(
            optimistic=round_half_up(duration * cfg.adjustments.base_optimistic_factor),
            realistic=duration,
            pessimistic=round_half_up(duration * cfg.adjustments.base_pessimistic_factor),
        ),
        provider_info=ProviderInfo(name=provider_name or (segments[0].provider if segments else "Mixed")),
    )


def basic_instructions(segments: list[TransferSegment]) -> list[RouteInstruction]:
    return [
        RouteInstruction(
            step=i + 1,
            action=f"Take {s.provider}",
            detail=s.instruction,
            duration=s.duration,
            landmarks=list(s.landmarks),
        )
        for i, s in enumerate(segments)
    ]
