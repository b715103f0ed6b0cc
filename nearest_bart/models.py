"""
Pydantic models for nearest-bart.

Domain values (coordinates, stations, departures) plus the tagged result
returned by the pipeline and the view models built from it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Line(str, Enum):
    red = "Red"
    yellow = "Yellow"
    orange = "Orange"
    green = "Green"


class TravelDirection(str, Enum):
    eastbound = "Eastbound"
    westbound = "Westbound"


class LineDirectionKey(str, Enum):
    """Canonical line + direction bucket. Never sent by the feed itself."""

    red_east = "RedE"
    red_west = "RedW"
    yellow_east = "YellowE"
    yellow_west = "YellowW"
    orange_east = "OrangeE"
    orange_west = "OrangeW"
    green_east = "GreenE"
    green_west = "GreenW"

    @property
    def line(self) -> Line:
        return Line(self.value[:-1])

    @property
    def direction(self) -> TravelDirection:
        if self.value.endswith("E"):
            return TravelDirection.eastbound
        return TravelDirection.westbound

    @property
    def is_eastbound(self) -> bool:
        return self.direction == TravelDirection.eastbound


class LocationSource(str, Enum):
    live = "live"
    cached = "cached"


class FailureKind(str, Enum):
    no_location = "no_location"
    upstream_unavailable = "upstream_unavailable"
    invalid_input = "invalid_input"


class Stage(str, Enum):
    directory = "directory"
    departures = "departures"


class Coordinate(BaseModel):
    """A WGS84 point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CachedLocation(BaseModel):
    """Last live fix, as persisted by the location cache."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    captured_at_ms: int = Field(ge=0, description="Epoch milliseconds of the fix")

    @field_validator("captured_at_ms")
    @classmethod
    def representable(cls, value: int) -> int:
        try:
            datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"timestamp {value} is out of range") from exc
        return value

    @property
    def captured_at(self) -> datetime:
        return datetime.fromtimestamp(self.captured_at_ms / 1000, tz=timezone.utc)


class Station(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    address: str = ""
    city: str = ""
    location: Coordinate


class RawEstimate(BaseModel):
    """One predicted departure as reported by the ETD feed."""

    model_config = ConfigDict(frozen=True)

    minutes: int = Field(ge=0, description="0 means the train is leaving now")
    direction: str
    cars: int = Field(default=0, ge=0)
    platform: Optional[str] = None


class DestinationEstimates(BaseModel):
    """All estimates at one station heading to one destination."""

    model_config = ConfigDict(frozen=True)

    destination_code: str
    destination_name: str
    estimates: list[RawEstimate] = Field(default_factory=list)


class Departure(BaseModel):
    model_config = ConfigDict(frozen=True)

    destination: str
    destination_code: str
    minutes: int = Field(ge=0)
    clock_time: str = Field(description="Local departure time, e.g. '3:07 PM'")
    departs_at: datetime
    cars: int
    raw_direction: str
    key: LineDirectionKey
    platform: Optional[str] = None

    @property
    def arriving(self) -> bool:
        return self.minutes == 0


# Keys iterate in insertion order; callers rely on that for presentation.
DepartureBoard = dict[LineDirectionKey, list[Departure]]


class NearestStationResult(BaseModel):
    station: Station
    distance_km: float = Field(ge=0)


class NearbyDepartures(BaseModel):
    """Successful pipeline outcome."""

    status: Literal["ok"] = "ok"
    station: Station
    distance_km: float
    direction: TravelDirection
    distance_from_reference_miles: float
    board: DepartureBoard
    location: Coordinate
    location_source: LocationSource
    generated_at: datetime
    next_refresh_at: datetime


class PipelineFailure(BaseModel):
    """Terminal pipeline failure. stage is set only for upstream failures."""

    status: Literal["error"] = "error"
    kind: FailureKind
    stage: Optional[Stage] = None
    message: str


PipelineResult = Union[NearbyDepartures, PipelineFailure]


# ---------------------------------------------------------------------------
# View models
# ---------------------------------------------------------------------------


class SummaryLine(BaseModel):
    key: LineDirectionKey
    indicator: str
    text: str
    following: Optional[str] = None


class SummaryView(BaseModel):
    """Compact widget-sized rendering of a result."""

    status: Literal["ok", "error"]
    header: str
    lines: list[str] = Field(default_factory=list)
    departures: list[SummaryLine] = Field(default_factory=list)
    message: Optional[str] = None
    footer: Optional[str] = None


class TableSection(BaseModel):
    title: str
    rows: list[list[str]] = Field(default_factory=list)


class TableView(BaseModel):
    """Detailed tabular rendering of a result."""

    status: Literal["ok", "error"]
    header: str
    rows: list[list[str]] = Field(default_factory=list)
    sections: list[TableSection] = Field(default_factory=list)
    message: Optional[str] = None
