from typing import Literal

from pydantic import BaseModel, Field

from tworoute.services.transfer.models import (
    Coordinates,
    TransferConstraints,
    TransferPoint,
    TransferRequest,
    TransferTiming,
    TripContext,
)

TransportMode = Literal["walking", "metro", "bus", "train", "taxi", "rideshare", "ferry", "tram"]
PointType = Literal["hotel", "airport", "station", "stop", "landmark", "address"]
TimeOfDay = Literal["early-morning", "morning", "afternoon", "evening", "night"]
Weather = Literal["clear", "rain", "snow", "storm"]
Luggage = Literal["none", "light", "heavy"]
Flexibility = Literal["exact", "plus-minus-15", "plus-minus-30", "flexible"]
TripPurpose = Literal["airport-transfer", "hotel-to-activity", "sightseeing", "return-journey"]


class CoordinatesSchema(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class TransferPointSchema(BaseModel):
    name: str
    type: PointType
    coordinates: CoordinatesSchema
    address: str | None = None
    facilities: list[str] = []
    accessibility: bool | None = None
    waiting_area: bool | None = None
    indoor_waiting: bool = False
    platform: str | None = None
    terminal: str | None = None
    gate: str | None = None
    floor: str | None = None
    entrance: str | None = None

    def to_domain(self) -> TransferPoint:
        return TransferPoint(
            name=self.name,
            type=self.type,
            coordinates=Coordinates(lat=self.coordinates.lat, lng=self.coordinates.lng),
            address=self.address,
            facilities=tuple(self.facilities),
            accessibility=self.accessibility,
            waiting_area=self.waiting_area,
            indoor_waiting=self.indoor_waiting,
            platform=self.platform,
            terminal=self.terminal,
            gate=self.gate,
            floor=self.floor,
            entrance=self.entrance,
        )


class TripContextSchema(BaseModel):
    trip_purpose: TripPurpose = "hotel-to-activity"
    time_of_day: TimeOfDay
    day_of_week: str
    season: str | None = None
    weather_forecast: Weather | None = None


class TransferTimingSchema(BaseModel):
    departure_time: str | None = None
    arrival_by: str | None = None
    flexibility: Flexibility = "flexible"


class TransferConstraintsSchema(BaseModel):
    max_walking_time: int | None = Field(default=None, ge=0)
    avoid_modes: list[TransportMode] = []
    prefer_modes: list[TransportMode] = []
    max_cost: float | None = Field(default=None, ge=0)
    must_be_accessible: bool = False
    luggage: Luggage | None = None


class TransferRequestSchema(BaseModel):
    origin: TransferPointSchema
    destination: TransferPointSchema
    context: TripContextSchema
    timing: TransferTimingSchema = TransferTimingSchema()
    constraints: TransferConstraintsSchema = TransferConstraintsSchema()

    def to_domain(self) -> TransferRequest:
        return TransferRequest(
            origin=self.origin.to_domain(),
            destination=self.destination.to_domain(),
            context=TripContext(**self.context.model_dump()),
            timing=TransferTiming(**self.timing.model_dump()),
            constraints=TransferConstraints(**self.constraints.model_dump()),
        )
