"""Transfer composer configuration: single source for all thresholds."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SpeedAssumptions:
    """Rough travel speeds used when no provider timing is available."""
    walking_m_per_min: float = 80.0    # ~5 km/h
    driving_m_per_min: float = 500.0   # ~30 km/h city average
    taxi_base_fare: float = 3.0
    taxi_fare_per_m: float = 0.002
    rideshare_discount: float = 0.9
    rideshare_pickup_wait: int = 4     # minutes


@dataclass(frozen=True)
class WalkingLimits:
    """Walking-time defaults when the request does not set maxWalkingTime."""
    fastest_default: int = 15
    cheapest_default: int = 20
    long_walk_warning: int = 15
    pickup_max: int = 10               # cap for the hybrid walk-to-pickup leg
    pickup_min_gain_m: int = 200       # pickup must bring the taxi this much closer


@dataclass(frozen=True)
class ScoringWeights:
    """Factor weights, applied in this order by sequential interpolation.

    blend_mode "sequential" reproduces the legacy order-dependent blend:
        score = score * (1 - w) + sub * w, starting from 100.
    "weighted_sum" is the order-independent alternative sum(w_i * sub_i).
    """
    time: float = 0.30
    reliability: float = 0.25
    cost: float = 0.20
    convenience: float = 0.15
    comfort: float = 0.10
    blend_mode: str = "sequential"

    def ordered(self) -> list[tuple[str, float]]:
        return [
            ("time", self.time),
            ("reliability", self.reliability),
            ("cost", self.cost),
            ("convenience", self.convenience),
            ("comfort", self.comfort),
        ]


@dataclass(frozen=True)
class TimePenalties:
    """Cumulative duration and walking penalties for the time sub-score."""
    duration_steps: tuple = ((60, 20), (90, 20), (120, 30))   # (> minutes, penalty)
    walking_steps: tuple = ((15, 15), (25, 25))


@dataclass(frozen=True)
class ReliabilityPenalties:
    weather_sensitive: int = 15
    complexity: dict = field(default_factory=lambda: {"simple": 0, "moderate": 10, "complex": 20})
    punctuality: dict = field(default_factory=lambda: {
        "very-reliable": 10,
        "reliable": 0,
        "variable": -15,
        "unpredictable": -30,
    })


@dataclass(frozen=True)
class CostPenalties:
    cost_steps: tuple = ((50, 25), (100, 25))
    free_bonus: int = 20
    over_budget: int = 50


@dataclass(frozen=True)
class ConveniencePenalties:
    heavy_luggage_difficult: int = 30
    inaccessible: int = 50
    avoided_mode: int = 25


@dataclass(frozen=True)
class ComfortAdjustments:
    comfort: dict = field(default_factory=lambda: {"premium": 20, "standard": 0, "basic": -10})
    indoor_waiting: int = 5


@dataclass(frozen=True)
class DedupTolerances:
    """Two candidates closer than these are treated as the same route."""
    duration_minutes: float = 5.0
    cost: float = 5.0
    ordered_modes: bool = False    # False = compare mode sets, True = exact mode sequences


@dataclass(frozen=True)
class TimeAdjustments:
    """Context multipliers for the refined time estimate."""
    time_of_day: dict = field(default_factory=lambda: {
        "early-morning": 0.9,
        "morning": 1.2,
        "afternoon": 1.0,
        "evening": 1.3,
        "night": 0.8,
    })
    weather: dict = field(default_factory=lambda: {
        "rain": 1.2,
        "snow": 1.4,
        "storm": 1.6,
    })
    optimistic_factor: float = 0.85
    pessimistic_factor: float = 1.5
    base_optimistic_factor: float = 0.9
    base_pessimistic_factor: float = 1.3
    delay_buffer_ratio: float = 0.3


@dataclass(frozen=True)
class FallbackTaxi:
    """Always-available taxi used when only one candidate exists."""
    duration: int = 20
    fare: float = 25.0
    confidence: int = 70
    distance_m: int = 5000
    provider: str = "Taxi Service"


@dataclass(frozen=True)
class TransferConfig:
    """Top-level config aggregating all sub-configs."""
    speeds: SpeedAssumptions = field(default_factory=SpeedAssumptions)
    walking: WalkingLimits = field(default_factory=WalkingLimits)
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    time_penalties: TimePenalties = field(default_factory=TimePenalties)
    reliability: ReliabilityPenalties = field(default_factory=ReliabilityPenalties)
    cost: CostPenalties = field(default_factory=CostPenalties)
    convenience: ConveniencePenalties = field(default_factory=ConveniencePenalties)
    comfort: ComfortAdjustments = field(default_factory=ComfortAdjustments)
    dedup: DedupTolerances = field(default_factory=DedupTolerances)
    adjustments: TimeAdjustments = field(default_factory=TimeAdjustments)
    fallback: FallbackTaxi = field(default_factory=FallbackTaxi)
    default_confidence: int = 80


# Modes that run to a timetable (disruption-prone, not on demand)
SCHEDULED_MODES = frozenset({"metro", "bus", "train", "tram", "ferry"})
ON_DEMAND_MODES = frozenset({"taxi", "rideshare"})
VEHICLE_MODES = SCHEDULED_MODES | ON_DEMAND_MODES
ALL_MODES = VEHICLE_MODES | {"walking"}

# Higher = more dependable scheduled service
MODE_RELIABILITY_RANK = {
    "train": 5,
    "metro": 5,
    "tram": 4,
    "ferry": 3,
    "bus": 2,
    "taxi": 1,
    "rideshare": 1,
    "walking": 0,
}

COMPLEXITY_RANK = {"simple": 0, "moderate": 1, "complex": 2}

PUNCTUALITY_RANK = {"very-reliable": 3, "reliable": 2, "variable": 1, "unpredictable": 0}

# Shared instance
transfer_config = TransferConfig()
