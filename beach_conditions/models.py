"""Domain vocabulary and schemas for per-location beach conditions.

These models are the stable contract between the upstream sources, the disk
cache and whatever renders the snapshot map. Every model round-trips through
JSON, which is what lets the cache store them unchanged. No fetching logic
lives here.
"""

from __future__ import annotations

import datetime as dt
import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class TideState(str, Enum):
    """Direction of the tide at a given instant."""
    RISING = "rising"
    FALLING = "falling"
    HIGH = "high"
    LOW = "low"


class WeatherCondition(str, Enum):
    """Coarse sky/precipitation condition derived from WMO weather codes."""
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SHOWERS = "showers"
    THUNDERSTORM = "thunderstorm"
    SNOW = "snow"
    FOG = "fog"


class WaterStatus(str, Enum):
    """Swimming safety status of a monitored beach."""
    SAFE = "safe"
    ADVISORY = "advisory"
    CLOSED = "closed"
    UNKNOWN = "unknown"


class Location(_StrictBaseModel):
    """A beach we report conditions for."""
    id: str
    name: str
    latitude: float
    longitude: float
    water_quality_id: Optional[str] = None


class TidePrediction(_StrictBaseModel):
    """One row of the reference tide table: a single high or low tide."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    date: dt.date
    time: dt.time
    height: float
    is_high: bool


class TideEvent(_StrictBaseModel):
    """An upcoming high or low tide."""
    time: dt.datetime  # timezone-aware, station local time
    height: float


class TideInfo(_StrictBaseModel):
    """Tide state derived for a single instant."""
    current_height: float
    tide_state: TideState
    next_high: Optional[TideEvent] = None
    next_low: Optional[TideEvent] = None
    fetched_at: dt.datetime

    def hourly_heights(self, max_height: float) -> List[float]:
        """Approximate heights for hours 6..21, phased on the next high tide.

        Intended for small chart widgets; this is a sinusoid with a 12 hour
        period, not an interpolation of the table.
        """
        phase = float(self.next_high.time.hour) if self.next_high else 12.0
        heights: List[float] = []
        for hour in range(6, 22):
            t = (hour - phase) * math.pi / 6.0
            height = (max_height / 2.0) * (1.0 + math.cos(t))
            heights.append(min(max(height, 0.0), max_height))
        return heights


class HourlyForecast(_StrictBaseModel):
    """Forecast for one hour of the current day."""
    hour: int = Field(ge=0, le=23)
    temperature: float
    feels_like: float
    condition: WeatherCondition
    wind: float
    wind_direction: str
    uv: float
    precipitation_chance: int = 0


class Weather(_StrictBaseModel):
    """Current weather at a location plus today's sun/UV figures."""
    temperature: float
    feels_like: float
    condition: WeatherCondition
    humidity: int
    wind: float
    uv: float
    sunrise: dt.time
    sunset: dt.time
    fetched_at: dt.datetime
    hourly: List[HourlyForecast] = Field(default_factory=list)


class WaterQuality(_StrictBaseModel):
    """Latest water-quality sample and the status derived from it."""
    status: WaterStatus
    ecoli_count: Optional[int] = None
    sample_date: dt.date
    advisory_reason: Optional[str] = None
    fetched_at: dt.datetime

    def age_days(self, today: dt.date | None = None) -> int:
        """Days elapsed since the sample was taken."""
        today = today or dt.date.today()
        return (today - self.sample_date).days

    def is_stale(self, today: dt.date | None = None, max_age_days: int = 2) -> bool:
        """True when the sample is too old to show its status as current."""
        return self.age_days(today) > max_age_days

    def is_very_stale(self, today: dt.date | None = None) -> bool:
        """True when the sample is older than a week."""
        return self.age_days(today) > 7

    def effective_status(self, today: dt.date | None = None) -> WaterStatus:
        """Status for display: UNKNOWN once the sample has gone stale."""
        if self.is_stale(today):
            return WaterStatus.UNKNOWN
        return self.status


class ConditionsSnapshot(_StrictBaseModel):
    """Merged conditions for one location; each field may be missing."""
    location: Location
    weather: Optional[Weather] = None
    tides: Optional[TideInfo] = None
    water_quality: Optional[WaterQuality] = None


class Activity(str, Enum):
    """Beach activities we can rank hours for."""
    SWIMMING = "swimming"
    SUNBATHING = "sunbathing"
    SAILING = "sailing"
    SUNSET = "sunset"
    PEACE = "peace"


class ScoreFactors(_StrictBaseModel):
    """Per-factor suitability, each in 0..1."""
    temperature: float = Field(ge=0.0, le=1.0)
    water_quality: float = Field(ge=0.0, le=1.0)
    wind: float = Field(ge=0.0, le=1.0)
    uv: float = Field(ge=0.0, le=1.0)
    tide: float = Field(ge=0.0, le=1.0)
    crowd: float = Field(ge=0.0, le=1.0)
    time_of_day: float = Field(ge=0.0, le=1.0)


class TimeSlotScore(_StrictBaseModel):
    """Suitability of one hour at one location for one activity."""
    hour: int = Field(ge=0, le=23)
    location_id: str
    activity: Activity
    score: int = Field(ge=0, le=100)
    factors: ScoreFactors
    blocked: bool = False
    block_reason: Optional[str] = None


class ActivityWindow(_StrictBaseModel):
    """A run of good hours; ``end_hour`` is exclusive."""
    start_hour: int
    end_hour: int
    score: int
    reason: str
    factors: Optional[ScoreFactors] = None


class ActivityOutlook(_StrictBaseModel):
    """Hour-by-hour scores for one activity plus the best windows found in them."""
    location_id: str
    activity: Activity
    hours: List[TimeSlotScore] = Field(default_factory=list)
    best_windows: List[ActivityWindow] = Field(default_factory=list)
