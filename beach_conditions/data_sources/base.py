"""Interfaces and helpers for the upstream conditions sources."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from beach_conditions.models import TideInfo, WaterQuality, Weather


class ConditionsDataSource(Protocol):
    """Interface for anything that can provide weather, tides and water quality."""

    def fetch_weather(self, latitude: float, longitude: float) -> Weather:
        """Return the point forecast for the coordinates."""
        ...

    def fetch_water_quality(self, station: str) -> WaterQuality:
        """Return the latest classified sample for a monitoring station."""
        ...

    def fetch_tides(self, now: Optional[dt.datetime] = None) -> TideInfo:
        """Return the shared tide state."""
        ...


@dataclass
class CallableConditionsDataSource(ConditionsDataSource):
    """Wrap three callables so they can be swapped for different backends."""

    weather: Callable[..., Weather]
    water_quality: Callable[..., WaterQuality]
    tides: Callable[..., TideInfo]

    def fetch_weather(self, *args, **kwargs) -> Weather:
        """Delegate to the configured weather callable."""
        return self.weather(*args, **kwargs)

    def fetch_water_quality(self, *args, **kwargs) -> WaterQuality:
        """Delegate to the configured water-quality callable."""
        return self.water_quality(*args, **kwargs)

    def fetch_tides(self, *args, **kwargs) -> TideInfo:
        """Delegate to the configured tide callable."""
        return self.tides(*args, **kwargs)
