"""Primary/backup selector: best route first, then a backup that fails differently."""

import logging
import uuid
from dataclasses import replace

from tworoute.config import settings
from tworoute.exceptions import NoRouteFound
from tworoute.services.transfer.config import transfer_config
from tworoute.services.transfer.geo import round_half_up
from tworoute.services.transfer.models import (
    OperatingHours,
    ProviderInfo,
    RouteInstruction,
    TimeEstimate,
    TransferRequest,
    TransferRoute,
    TransferSegment,
)

logger = logging.getLogger(__name__)

cfg = transfer_config


def provider_category(provider: str) -> str:
    name = (provider or "").lower()
    if "taxi" in name or "uber" in name:
        return "rideshare"
    if "metro" in name or "subway" in name:
        return "metro"
    if "bus" in name:
        return "bus"
    if "train" in name:
        return "train"
    return "other"


def routes_use_different_strategies(a: TransferRoute, b: TransferRoute) -> bool:
    """True if the routes differ in lead mode, complexity, or lead provider category."""
    if a.lead_mode != b.lead_mode:
        return True
    if a.complexity != b.complexity:
        return True
    return provider_category(a.lead_provider) != provider_category(b.lead_provider)


def fallback_route(request: TransferRequest) -> TransferRoute:
    """Generic always-available taxi, used when there is nothing else to back up with."""
    fb = cfg.fallback
    adj = cfg.adjustments
    segment = TransferSegment(
        id="fallback_taxi",
        mode="taxi",
        start_point=request.origin,
        end_point=request.destination,
        duration=fb.duration,
        provider=fb.provider,
        fare=fb.fare,
        operating_hours="24/7",
        weather_dependent=False,
        accessibility=True,
        luggage_friendly=True,
        instruction=f"Take a taxi from {request.origin.name} to {request.destination.name}",
        frequency="on-demand",
        distance_m=fb.distance_m,
    )
    return TransferRoute(
        id=f"fallback_{uuid.uuid4().hex[:8]}",
        strategy="fallback",
        type="backup",
        confidence=fb.confidence,
        segments=[segment],
        total_duration=fb.duration,
        total_distance=fb.distance_m,
        total_cost=fb.fare,
        currency=settings.default_currency,
        operating_hours=OperatingHours(start="00:00", end="23:59"),
        frequency="on-demand",
        weather_sensitive=False,
        capacity="unlimited",
        complexity="simple",
        walking_required=0,
        luggage="easy",
        accessibility=True,
        comfort="standard",
        punctuality="reliable",
        tracking_available=True,
        instructions=[
            RouteInstruction(
                step=1,
                action="Hail taxi",
                detail="Use taxi app or street hailing",
                duration=fb.duration,
                alternatives=["Uber", "Lyft", "Local taxi companies"],
            )
        ],
        estimated_time=TimeEstimate(
            optimistic=round_half_up(fb.duration * adj.optimistic_factor),
            realistic=fb.duration,
            pessimistic=round_half_up(fb.duration * adj.pessimistic_factor),
        ),
        provider_info=ProviderInfo(name=fb.provider),
    )


def select_pair(
    ranked: list[TransferRoute],
    request: TransferRequest,
) -> tuple[TransferRoute, TransferRoute]:
    """Pick (primary, backup) from candidates already sorted best first.

    Backup is the best-ranked candidate that is strategically distinct from
    the primary; failing that the runner-up; failing that the fallback taxi.
    """
    if not ranked:
        raise NoRouteFound()

    primary = ranked[0]
    rest = ranked[1:]

    backup = next((r for r in rest if routes_use_different_strategies(primary, r)), None)
    if backup is None and rest:
        logger.info("No strategically distinct backup, using runner-up")
        backup = rest[0]
    if backup is None:
        logger.info("Single candidate, synthesizing fallback taxi as backup")
        backup = fallback_route(request)

    return replace(primary, type="primary"), replace(backup, type="backup")
