"""Domain vocabulary and schemas shared by the services, renderer and API.

This module defines the payloads that flow between the fetch services, the
resampler, the chart renderer and the HTTP layer: enums, the event
configuration, hourly forecast points and the response envelopes. Every
envelope that wraps an upstream fetch has an optional `error` field; when it
is set the list payloads are empty. No fetching or rendering lives here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class _CamelConfigModel(_StrictBaseModel):
    """Strict model read and written with camelCase keys; snake_case names are accepted too."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class ChartMode(str, Enum):
    """Vertical scaling mode for a chart row."""
    PERCENTAGE = "percentage"
    NATURAL = "natural"


class ThresholdDirection(str, Enum):
    """Which side of a threshold counts as adverse."""
    ABOVE = "above"
    BELOW = "below"


class AdverseThresholds(_CamelConfigModel):
    """Values beyond which a field is shaded as adverse."""
    max_temp: float = 80.0
    min_rain_chance: float = 15.0
    min_sky_cover: float = 50.0


class EventConfig(_CamelConfigModel):
    """The single venue and time window the dashboard watches."""
    name: str = "Super Bowl LX"
    location: str = "Levi's Stadium"
    latitude: float = Field(default=37.403147, ge=-90, le=90)
    longitude: float = Field(default=-121.969814, ge=-180, le=180)
    timezone: str = "America/Los_Angeles"
    start_date: datetime = datetime(2026, 2, 8, 15, 30)
    end_date: Optional[datetime] = datetime(2026, 2, 8, 22, 0)
    adverse_conditions: AdverseThresholds = Field(default_factory=AdverseThresholds)

    def tzinfo(self) -> ZoneInfo:
        """Return the venue timezone."""
        return ZoneInfo(self.timezone)

    def start_instant(self) -> datetime:
        """Return the event start as an aware datetime (naive values are venue-local)."""
        if self.start_date.tzinfo is None:
            return self.start_date.replace(tzinfo=self.tzinfo())
        return self.start_date


class HourlyPoint(BaseModel):
    """One resampled forecast hour: converted field values keyed by NWS field name."""
    time: datetime
    values: Dict[str, Optional[float]] = Field(default_factory=dict)
    wind_cardinal: Optional[str] = None

    def value(self, field: str) -> Optional[float]:
        """Return the value for a field, or None when it is missing."""
        return self.values.get(field)


class GridpointForecast(BaseModel):
    """Hourly series produced from the NWS gridpoint forecast."""
    timestamp: datetime
    source: Optional[str] = None
    hours: List[HourlyPoint] = Field(default_factory=list)
    adverse_thresholds: Optional[AdverseThresholds] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, message: str) -> "GridpointForecast":
        """Build the error descriptor returned when no usable gridpoint exists."""
        return cls(timestamp=datetime.now(timezone.utc), hours=[], error=message)


class ChartSpec(BaseModel):
    """Everything the chart renderer needs to draw one row."""
    values: List[Optional[float]]
    labels: List[Optional[str]]
    color: str
    mode: ChartMode = ChartMode.NATURAL
    threshold: Optional[float] = None
    direction: ThresholdDirection = ThresholdDirection.ABOVE
    hours: List[HourlyPoint] = Field(default_factory=list)


class Station(BaseModel):
    """Observation station metadata."""
    id: str
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_mi: Optional[float] = None


class CurrentWeather(BaseModel):
    """Latest surface observation near the venue, in display units."""
    timestamp: datetime
    source: Optional[str] = None
    observation_time: Optional[str] = None
    station: Optional[Station] = None
    temperature_f: Optional[float] = None
    feels_like_f: Optional[float] = None
    dewpoint_f: Optional[float] = None
    relative_humidity: Optional[float] = None
    wind_speed_mph: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    wind_cardinal: Optional[str] = None
    wind_gust_mph: Optional[float] = None
    visibility_mi: Optional[float] = None
    sea_level_pressure_mb: Optional[float] = None
    altimeter_inhg: Optional[float] = None
    precip_1hr_in: Optional[float] = None
    clouds: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class Alert(BaseModel):
    """One active NWS alert, reduced to what the dashboard shows."""
    event: Optional[str] = None
    headline: Optional[str] = None
    severity: Optional[str] = None
    effective: Optional[str] = None
    expires: Optional[str] = None
    severe: bool = False


class AlertsSummary(BaseModel):
    """Active alerts for the venue point."""
    timestamp: datetime
    alerts: List[Alert] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None


class RadarTimes(BaseModel):
    """Recent MRMS reflectivity frame times available from the WMS server."""
    timestamp: datetime
    source: Optional[str] = None
    wms_url: Optional[str] = None
    layer: Optional[str] = None
    style: Optional[str] = None
    times: List[str] = Field(default_factory=list)
    total_available: int = 0
    time_count: int = 0
    error: Optional[str] = None


class SatelliteTimes(BaseModel):
    """Recent GOES frame times for one RealEarth channel."""
    timestamp: datetime
    source: Optional[str] = None
    tile_url: Optional[str] = None
    channel: str
    channel_name: Optional[str] = None
    times: List[str] = Field(default_factory=list)
    total_available: int = 0
    time_count: int = 0
    error: Optional[str] = None


class KeyPoints(BaseModel):
    """Short operational bullets summarizing the next 24 hours."""
    timestamp: datetime
    bullets: List[str] = Field(default_factory=list)
    model: Optional[str] = None
    error: Optional[str] = None
