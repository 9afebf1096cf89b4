"""Typed data model for transfer requests, routes, and analyses."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

POINT_TYPES = ("hotel", "airport", "station", "stop", "landmark", "address")
TIME_OF_DAY_BUCKETS = ("early-morning", "morning", "afternoon", "evening", "night")
WEATHER_CONDITIONS = ("clear", "rain", "snow", "storm")
LUGGAGE_LEVELS = ("none", "light", "heavy")
FLEXIBILITY_CLASSES = ("exact", "plus-minus-15", "plus-minus-30", "flexible")
TRIP_PURPOSES = ("airport-transfer", "hotel-to-activity", "sightseeing", "return-journey")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def complexity_for(segment_count: int) -> str:
    """1 segment = simple, 2 = moderate, more = complex."""
    if segment_count <= 1:
        return "simple"
    if segment_count == 2:
        return "moderate"
    return "complex"


def total_duration(segments: list["TransferSegment"]) -> int:
    return sum(s.duration + (s.wait_time or 0) for s in segments)


# ---------- Points and segments ----------


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    @property
    def key(self) -> str:
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True)
class TransferPoint:
    """A named location a segment starts or ends at."""

    name: str
    type: str  # hotel | airport | station | stop | landmark | address
    coordinates: Coordinates
    address: str | None = None
    facilities: tuple[str, ...] = ()
    accessibility: bool | None = None
    waiting_area: bool | None = None
    indoor_waiting: bool = False
    platform: str | None = None
    terminal: str | None = None
    gate: str | None = None
    floor: str | None = None
    entrance: str | None = None
    minimum_transfer_time: int | None = None
    peak_hour_crowding: str | None = None  # low | medium | high

    def to_dict(self) -> dict:
        d = asdict(self)
        d["facilities"] = list(self.facilities)
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "TransferPoint":
        coords = data["coordinates"]
        return cls(
            name=data["name"],
            type=data.get("type", "address"),
            coordinates=Coordinates(lat=float(coords["lat"]), lng=float(coords["lng"])),
            address=data.get("address"),
            facilities=tuple(data.get("facilities") or ()),
            accessibility=data.get("accessibility"),
            waiting_area=data.get("waiting_area"),
            indoor_waiting=bool(data.get("indoor_waiting", False)),
            platform=data.get("platform"),
            terminal=data.get("terminal"),
            gate=data.get("gate"),
            floor=data.get("floor"),
            entrance=data.get("entrance"),
            minimum_transfer_time=data.get("minimum_transfer_time"),
            peak_hour_crowding=data.get("peak_hour_crowding"),
        )


@dataclass
class TransferSegment:
    """One atomic leg of a route using a single mode."""

    id: str
    mode: str  # walking | metro | bus | train | taxi | rideshare | ferry | tram
    start_point: TransferPoint
    end_point: TransferPoint
    duration: int  # minutes
    provider: str
    fare: float
    operating_hours: str
    weather_dependent: bool
    accessibility: bool
    luggage_friendly: bool
    instruction: str
    wait_time: int | None = None
    frequency: str | None = None
    line: str | None = None
    direction: str | None = None
    ticket_type: str | None = None
    distance_m: int = 0
    landmarks: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["start_point"] = self.start_point.to_dict()
        d["end_point"] = self.end_point.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "TransferSegment":
        return cls(
            **{
                **data,
                "start_point": TransferPoint.from_dict(data["start_point"]),
                "end_point": TransferPoint.from_dict(data["end_point"]),
                "landmarks": list(data.get("landmarks") or []),
                "warnings": list(data.get("warnings") or []),
            }
        )


# ---------- Routes ----------


@dataclass
class RouteInstruction:
    step: int
    action: str  # "Walk", "Board Metro Line 1", ...
    detail: str
    duration: int
    distance: int | None = None
    landmarks: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    alternatives: list[str] = field(default_factory=list)


@dataclass
class TimeEstimate:
    optimistic: int
    realistic: int
    pessimistic: int


@dataclass
class OperatingHours:
    start: str  # HH:MM
    end: str


@dataclass
class ProviderInfo:
    name: str
    booking_required: bool = False
    advance_notice: str | None = None


@dataclass
class TransferRoute:
    """A complete origin-to-destination journey with its aggregate attributes."""

    id: str
    strategy: str
    segments: list[TransferSegment]
    total_duration: int
    total_distance: int
    total_cost: float
    currency: str
    operating_hours: OperatingHours
    frequency: str
    weather_sensitive: bool
    capacity: str      # low | medium | high | unlimited
    complexity: str    # simple | moderate | complex
    walking_required: int
    luggage: str       # easy | manageable | difficult
    accessibility: bool
    comfort: str       # basic | standard | premium
    punctuality: str   # very-reliable | reliable | variable | unpredictable
    tracking_available: bool
    estimated_time: TimeEstimate
    provider_info: ProviderInfo
    type: str = "primary"
    confidence: float = 80
    seasonal_operation: bool = False
    alternative_options: bool = True
    instructions: list[RouteInstruction] = field(default_factory=list)
    contingency_plan: str | None = None
    score: float | None = None
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def lead_mode(self) -> str | None:
        return self.segments[0].mode if self.segments else None

    @property
    def lead_provider(self) -> str:
        return self.segments[0].provider if self.segments else ""

    @property
    def modes(self) -> list[str]:
        return [s.mode for s in self.segments]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["segments"] = [s.to_dict() for s in self.segments]
        d["last_updated"] = self.last_updated.isoformat()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "TransferRoute":
        return cls(
            **{
                **data,
                "segments": [TransferSegment.from_dict(s) for s in data["segments"]],
                "operating_hours": OperatingHours(**data["operating_hours"]),
                "estimated_time": TimeEstimate(**data["estimated_time"]),
                "provider_info": ProviderInfo(**data["provider_info"]),
                "instructions": [RouteInstruction(**i) for i in data.get("instructions") or []],
                "last_updated": datetime.fromisoformat(data["last_updated"]),
            }
        )


# ---------- Request ----------


@dataclass
class TransferTiming:
    departure_time: str | None = None  # ISO datetime or "flexible"
    arrival_by: str | None = None
    flexibility: str = "flexible"


@dataclass
class TransferConstraints:
    max_walking_time: int | None = None
    avoid_modes: list[str] = field(default_factory=list)
    prefer_modes: list[str] = field(default_factory=list)
    max_cost: float | None = None
    must_be_accessible: bool = False
    luggage: str | None = None  # none | light | heavy


@dataclass
class TripContext:
    trip_purpose: str
    time_of_day: str
    day_of_week: str
    season: str | None = None
    weather_forecast: str | None = None


@dataclass
class TransferRequest:
    origin: TransferPoint
    destination: TransferPoint
    context: TripContext
    timing: TransferTiming = field(default_factory=TransferTiming)
    constraints: TransferConstraints = field(default_factory=TransferConstraints)

    @property
    def departure(self) -> str:
        if not self.timing.departure_time or self.timing.departure_time == "flexible":
            return "now"
        return self.timing.departure_time


# ---------- Output ----------


@dataclass
class RouteAnalysis:
    """Side-by-side comparison of the chosen primary and backup routes."""

    primary_advantages: list[str]
    backup_advantages: list[str]
    risk_mitigation: list[str]
    when_to_use_primary: str
    when_to_use_backup: str
    critical_factors: list[str]
    confidence: int
    analyzed_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "comparison": {
                "primary_advantages": self.primary_advantages,
                "backup_advantages": self.backup_advantages,
                "risk_mitigation": self.risk_mitigation,
            },
            "recommendations": {
                "when_to_use_primary": self.when_to_use_primary,
                "when_to_use_backup": self.when_to_use_backup,
                "critical_factors": self.critical_factors,
            },
            "confidence": self.confidence,
            "analyzed_at": self.analyzed_at.isoformat(),
        }


@dataclass
class StrategyOutcome:
    """Result of one strategy run: a route, or the reason there is none."""

    strategy: str
    route: TransferRoute | None = None
    error: str | None = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.route is not None

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "found": self.ok,
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass
class ComposedTransfer:
    primary: TransferRoute
    backup: TransferRoute
    analysis: RouteAnalysis
    from_cache: bool = False
    candidates_considered: int = 0
    outcomes: list[StrategyOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_dict(),
            "backup": self.backup.to_dict(),
            "analysis": self.analysis.to_dict(),
            "meta": {
                "from_cache": self.from_cache,
                "candidates_considered": self.candidates_considered,
                "strategies": [o.to_dict() for o in self.outcomes],
            },
        }
