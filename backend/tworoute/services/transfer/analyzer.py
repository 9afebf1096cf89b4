"""Comparative analyzer: why each route, and when to switch to the backup."""

from tworoute.services.transfer.geo import round_half_up
from tworoute.services.transfer.models import RouteAnalysis, TransferRequest, TransferRoute
from tworoute.services.transfer.selection import routes_use_different_strategies


def route_advantages(route: TransferRoute, other: TransferRoute) -> list[str]:
    advantages = []
    if route.total_duration < other.total_duration:
        advantages.append(f"{other.total_duration - route.total_duration} minutes faster")
    if route.total_cost < other.total_cost:
        advantages.append(f"{other.total_cost - route.total_cost:.2f} {route.currency} cheaper")
    if route.complexity == "simple" and other.complexity != "simple":
        advantages.append("Simpler route with fewer transfers")
    if not route.weather_sensitive and other.weather_sensitive:
        advantages.append("Weather-independent")
    return advantages


def risk_mitigation(primary: TransferRoute, backup: TransferRoute) -> list[str]:
    notes = []
    if routes_use_different_strategies(primary, backup):
        notes.append("Routes use different transport modes for redundancy")
    if primary.weather_sensitive and not backup.weather_sensitive:
        notes.append("Backup route unaffected by weather")
    if primary.punctuality == "variable" and backup.punctuality in ("reliable", "very-reliable"):
        notes.append("Backup route more reliable for time-sensitive journeys")
    return notes


def usage_recommendation(route: TransferRoute, route_type: str) -> str:
    conditions = []
    if route.weather_sensitive:
        conditions.append("good weather")
    if route.complexity == "complex":
        conditions.append("when you have extra time")
    if route.punctuality == "variable":
        conditions.append("when flexible with timing")

    if route_type == "primary":
        if conditions:
            return f"Use when {' and '.join(conditions)}"
        return "Recommended for normal conditions"
    if conditions:
        return f"Use when primary route is affected by {' or '.join(conditions)}"
    return "Use when primary route is unavailable"


def critical_factors(request: TransferRequest) -> list[str]:
    factors = []
    if request.timing.arrival_by:
        factors.append("Time-critical journey - allow buffer time")
    if request.constraints.luggage == "heavy":
        factors.append("Heavy luggage - prefer direct routes")
    if request.constraints.must_be_accessible:
        factors.append("Accessibility required - verify all segments")
    weather = request.context.weather_forecast
    if weather and weather != "clear":
        factors.append(f"Weather: {weather} - consider covered routes")
    return factors


def analyze_routes(primary: TransferRoute, backup: TransferRoute, request: TransferRequest) -> RouteAnalysis:
    return RouteAnalysis(
        primary_advantages=route_advantages(primary, backup),
        backup_advantages=route_advantages(backup, primary),
        risk_mitigation=risk_mitigation(primary, backup),
        when_to_use_primary=usage_recommendation(primary, "primary"),
        when_to_use_backup=usage_recommendation(backup, "backup"),
        critical_factors=critical_factors(request),
        confidence=round_half_up((primary.confidence + backup.confidence) / 2),
    )
