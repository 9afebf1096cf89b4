"""Multi-factor scorer: ranks candidate routes on five weighted factors.

The legacy blend is sequential interpolation, not a weighted sum: starting
from 100, each factor in turn replaces the running score with

    score = score * (1 - weight) + subscore * weight

so later factors pull harder on the result than their nominal weight
suggests, and reordering the factors changes the outcome. blend_mode
"weighted_sum" in ScoringWeights switches to sum(weight * subscore).
"""

import logging
from dataclasses import dataclass, replace

from tworoute.services.transfer.config import ScoringWeights, transfer_config
from tworoute.services.transfer.geo import round_half_up
from tworoute.services.transfer.models import TransferRequest, TransferRoute

logger = logging.getLogger(__name__)

cfg = transfer_config


@dataclass
class ScoreBreakdown:
    """Sub-scores behind a route's final score (each 0-100+)."""

    time: float = 0.0
    reliability: float = 0.0
    cost: float = 0.0
    convenience: float = 0.0
    comfort: float = 0.0
    total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "reliability": self.reliability,
            "cost": self.cost,
            "convenience": self.convenience,
            "comfort": self.comfort,
            "total": self.total,
        }


def score_time(route: TransferRoute) -> float:
    score = 100
    for threshold, penalty in cfg.time_penalties.duration_steps:
        if route.total_duration > threshold:
            score -= penalty
    for threshold, penalty in cfg.time_penalties.walking_steps:
        if route.walking_required > threshold:
            score -= penalty
    return max(0, score)


def score_reliability(route: TransferRoute) -> float:
    rules = cfg.reliability
    score = 100
    if route.weather_sensitive:
        score -= rules.weather_sensitive
    score -= rules.complexity.get(route.complexity, 0)
    score += rules.punctuality.get(route.punctuality, 0)
    return max(0, score)


def score_cost(route: TransferRoute, request: TransferRequest) -> float:
    rules = cfg.cost
    score = 100
    for threshold, penalty in rules.cost_steps:
        if route.total_cost > threshold:
            score -= penalty
    if route.total_cost == 0:
        score += rules.free_bonus
    max_cost = request.constraints.max_cost
    if max_cost and route.total_cost > max_cost:
        score -= rules.over_budget
    return max(0, score)


def score_convenience(route: TransferRoute, request: TransferRequest) -> float:
    rules = cfg.convenience
    constraints = request.constraints
    score = 100
    if constraints.luggage == "heavy" and route.luggage == "difficult":
        score -= rules.heavy_luggage_difficult
    if constraints.must_be_accessible and not route.accessibility:
        score -= rules.inaccessible
    avoid = set(constraints.avoid_modes)
    if any(s.mode in avoid for s in route.segments):
        score -= rules.avoided_mode
    return max(0, score)


def score_comfort(route: TransferRoute) -> float:
    rules = cfg.comfort
    score = 100 + rules.comfort.get(route.comfort, 0)
    if any(s.start_point.indoor_waiting or s.end_point.indoor_waiting for s in route.segments):
        score += rules.indoor_waiting
    return max(0, score)


def score_breakdown(
    route: TransferRoute,
    request: TransferRequest,
    weights: ScoringWeights | None = None,
) -> ScoreBreakdown:
    weights = weights or cfg.weights
    subscores = {
        "time": score_time(route),
        "reliability": score_reliability(route),
        "cost": score_cost(route, request),
        "convenience": score_convenience(route, request),
        "comfort": score_comfort(route),
    }

    if weights.blend_mode == "weighted_sum":
        total = sum(weight * subscores[name] for name, weight in weights.ordered())
    else:
        total = 100.0
        for name, weight in weights.ordered():
            total = total * (1 - weight) + subscores[name] * weight

    return ScoreBreakdown(**subscores, total=round_half_up(total))


def score_route(
    route: TransferRoute,
    request: TransferRequest,
    weights: ScoringWeights | None = None,
) -> float:
    return score_breakdown(route, request, weights).total


def rank_routes(
    candidates: list[TransferRoute],
    request: TransferRequest,
    weights: ScoringWeights | None = None,
) -> list[TransferRoute]:
    """Score every candidate and sort best first (ties keep candidate order)."""
    scored = []
    for route in candidates:
        breakdown = score_breakdown(route, request, weights)
        logger.debug(f"Scored {route.strategy} route {route.id}: {breakdown.to_dict()}")
        scored.append(replace(route, score=breakdown.total))

    scored.sort(key=lambda r: r.score, reverse=True)
    return scored
