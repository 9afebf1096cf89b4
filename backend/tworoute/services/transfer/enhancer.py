"""Route enhancer: step-by-step instructions, contingency plan, refined time estimate."""

import logging
from dataclasses import replace

from tworoute.services.transfer.config import SCHEDULED_MODES, transfer_config
from tworoute.services.transfer.geo import round_half_up
from tworoute.services.transfer.models import (
    RouteInstruction,
    TimeEstimate,
    TransferRequest,
    TransferRoute,
    TransferSegment,
    utcnow,
)

logger = logging.getLogger(__name__)

cfg = transfer_config

MODE_ALTERNATIVES = {
    "metro": ["Bus route", "Taxi"],
    "bus": ["Metro if available", "Taxi"],
    "taxi": ["Public transport", "Rideshare app"],
    "rideshare": ["Taxi", "Public transport"],
    "train": ["Express bus", "Taxi"],
    "tram": ["Bus route", "Walking"],
    "ferry": ["Road route by taxi", "Next sailing"],
}


def alternatives_for(segment: TransferSegment) -> list[str]:
    return list(MODE_ALTERNATIVES.get(segment.mode, ["Taxi", "Walking"]))


def _boarding_detail(segment: TransferSegment) -> str:
    parts = [segment.instruction]
    start = segment.start_point
    where = [
        f"{label} {value}"
        for label, value in (("platform", start.platform), ("terminal", start.terminal), ("gate", start.gate))
        if value
    ]
    if where:
        parts.append(f"Board at {', '.join(where)}")
    if segment.wait_time:
        parts.append(f"Expect to wait about {segment.wait_time} minutes")
    if segment.frequency and segment.frequency != "on-demand":
        parts.append(f"Service runs {segment.frequency}")
    return ". ".join(parts) + "."


def detailed_instructions(route: TransferRoute) -> list[RouteInstruction]:
    instructions = []
    for step, segment in enumerate(route.segments, start=1):
        if segment.mode == "walking":
            landmarks = ", ".join(segment.landmarks) or "directional signs"
            instructions.append(
                RouteInstruction(
                    step=step,
                    action="Walk",
                    detail=f"{segment.instruction}. Look for {landmarks}.",
                    duration=segment.duration,
                    distance=segment.distance_m or segment.duration * round_half_up(cfg.speeds.walking_m_per_min),
                    landmarks=list(segment.landmarks),
                    warnings=list(segment.warnings),
                    alternatives=["Taxi as backup if walking is difficult"],
                )
            )
        else:
            label = f"{segment.provider} {segment.line}" if segment.line else segment.provider
            instructions.append(
                RouteInstruction(
                    step=step,
                    action=f"Board {label}",
                    detail=_boarding_detail(segment),
                    duration=segment.duration + (segment.wait_time or 0),
                    distance=segment.distance_m or None,
                    landmarks=list(segment.landmarks),
                    warnings=list(segment.warnings),
                    alternatives=alternatives_for(segment),
                )
            )
    return instructions


def contingency_plan(route: TransferRoute, route_type: str) -> str:
    plans = []
    if route.weather_sensitive:
        plans.append("In bad weather, use taxi instead of walking segments")
    if any(s.mode in SCHEDULED_MODES for s in route.segments):
        plans.append("If public transport is disrupted, use taxi/rideshare")
    buffer = round_half_up(route.total_duration * cfg.adjustments.delay_buffer_ratio)
    plans.append(f"Allow extra {buffer} minutes for delays")
    if route_type == "backup":
        plans.append("As ultimate fallback, taxi service is available 24/7")
    return ". ".join(plans) + "."


def refined_time_estimate(route: TransferRoute, request: TransferRequest) -> TimeEstimate:
    """Three-point estimate scaled for time of day and forecast weather."""
    adj = cfg.adjustments
    time_factor = adj.time_of_day.get(request.context.time_of_day, 1.0)
    weather_factor = adj.weather.get(request.context.weather_forecast, 1.0)
    adjusted = round_half_up(route.total_duration * time_factor * weather_factor)
    return TimeEstimate(
        optimistic=round_half_up(adjusted * adj.optimistic_factor),
        realistic=adjusted,
        pessimistic=round_half_up(adjusted * adj.pessimistic_factor),
    )


def enhance_route(route: TransferRoute, request: TransferRequest, route_type: str) -> TransferRoute:
    """Return a copy of the route with instructions, contingency plan and estimate filled in.

    total_duration is left as built; only the estimate reflects context.
    """
    enhanced = replace(
        route,
        type=route_type,
        instructions=detailed_instructions(route),
        contingency_plan=contingency_plan(route, route_type),
        estimated_time=refined_time_estimate(route, request),
        last_updated=utcnow(),
    )
    logger.debug(
        f"Enhanced {route_type} route {route.id}: {len(enhanced.instructions)} steps, "
        f"estimate {enhanced.estimated_time.optimistic}-{enhanced.estimated_time.pessimistic} min"
    )
    return enhanced
