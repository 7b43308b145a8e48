"""Upstream sources for weather, tides and water quality."""

from .base import CallableConditionsDataSource, ConditionsDataSource
from .factory import build_data_source
from .open_meteo_client import WeatherSource, weather_code_to_condition
from .tide_table import StaticTideTable, TidePredictionTable, load_tide_table
from .tides import TideEngine
from .water_quality_client import WaterQualitySource, determine_status

__all__ = [
    "build_data_source",
    "CallableConditionsDataSource",
    "ConditionsDataSource",
    "WeatherSource",
    "weather_code_to_condition",
    "StaticTideTable",
    "TidePredictionTable",
    "load_tide_table",
    "TideEngine",
    "WaterQualitySource",
    "determine_status",
]
