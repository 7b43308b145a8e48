"""Helpers for fetching point forecasts from the Open-Meteo API."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, List, Mapping, Optional

import requests

from beach_conditions.cache_store import CacheStore
from beach_conditions.errors import ParseFailure, TransportFailure
from beach_conditions.models import HourlyForecast, Weather, WeatherCondition
from beach_conditions.resilience import fetch_with_cache
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="open_meteo_client")

session = requests.Session()

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
SOURCE = "open-meteo"

CURRENT_VARS = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
]
DAILY_VARS = ["sunrise", "sunset", "uv_index_max"]
HOURLY_VARS = [
    "temperature_2m",
    "apparent_temperature",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "uv_index",
    "precipitation_probability",
]

EXPECTED_CURRENT_UNITS = {
    "temperature_2m": "°C",
    "relative_humidity_2m": "%",
    "apparent_temperature": "°C",
    "wind_speed_10m": "km/h",
    "wind_direction_10m": "°",
}

# Acceptable alternative units that should not trigger warnings (API/localized differences).
ALLOWED_UNIT_SYNONYMS = {
    "relative_humidity_2m": {"%", "percent"},
    "wind_direction_10m": {"°", "deg", "degrees"},
}

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def weather_code_to_condition(code: int) -> WeatherCondition:
    """Map a WMO weather code onto our condition taxonomy; unknown codes are CLOUDY."""
    if code == 0:
        return WeatherCondition.CLEAR
    if 1 <= code <= 3:
        return WeatherCondition.PARTLY_CLOUDY
    if code in (45, 48):
        return WeatherCondition.FOG
    if 51 <= code <= 55 or 61 <= code <= 65 or 80 <= code <= 82:
        return WeatherCondition.RAIN
    if 56 <= code <= 57 or 66 <= code <= 67:
        return WeatherCondition.SHOWERS
    if 71 <= code <= 77 or 85 <= code <= 86:
        return WeatherCondition.SNOW
    if 95 <= code <= 99:
        return WeatherCondition.THUNDERSTORM
    return WeatherCondition.CLOUDY


def degrees_to_direction(degrees: float) -> str:
    """Convert a bearing to one of 16 compass points."""
    deg = ((degrees % 360.0) + 360.0) % 360.0
    return COMPASS_POINTS[int((deg + 11.25) / 22.5) % 16]


def _warn_on_unexpected_units(units: Mapping[str, Any] | None, *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, expected in EXPECTED_CURRENT_UNITS.items():
        actual = units.get(field)
        if actual and actual != expected and actual not in ALLOWED_UNIT_SYNONYMS.get(field, set()):
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name)
    if not isinstance(section, Mapping):
        raise ParseFailure(SOURCE, f"missing '{name}' section")
    return section


def _number(section: Mapping[str, Any], field: str, context: str) -> float:
    value = section.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ParseFailure(SOURCE, f"missing or non-numeric {context}.{field}")
    return float(value)


def _first(daily: Mapping[str, Any], field: str) -> Any:
    values = daily.get(field)
    if not isinstance(values, list) or not values or values[0] is None:
        raise ParseFailure(SOURCE, f"missing daily.{field}")
    return values[0]


def parse_clock_time(value: str) -> dt.time:
    """Extract the time of day from an Open-Meteo local timestamp like 2026-01-01T08:05."""
    try:
        _, time_part = str(value).split("T", 1)
        return dt.datetime.strptime(time_part, "%H:%M").time()
    except ValueError as exc:
        raise ParseFailure(SOURCE, f"invalid time '{value}'") from exc


def parse_hourly(hourly: Mapping[str, Any] | None, today: dt.date) -> List[HourlyForecast]:
    """Build today's hourly forecasts; malformed hourly data yields an empty list."""
    if not isinstance(hourly, Mapping):
        return []

    def series(field: str) -> Optional[list]:
        values = hourly.get(field)
        if values is None:
            return []
        return values if isinstance(values, list) else None

    times, temps, codes, winds, uvs, feels, directions, precip = (
        series(field)
        for field in (
            "time",
            "temperature_2m",
            "weather_code",
            "wind_speed_10m",
            "uv_index",
            "apparent_temperature",
            "wind_direction_10m",
            "precipitation_probability",
        )
    )
    if any(values is None for values in (times, temps, codes, winds, uvs, feels, directions, precip)):
        logger.warning("Hourly section holds a non-list value; skipping hourly forecast")
        return []
    if not (len(temps) == len(codes) == len(winds) == len(uvs) == len(times)):
        logger.warning("Hourly arrays have inconsistent lengths; skipping hourly forecast")
        return []

    out: List[HourlyForecast] = []
    for i, t in enumerate(times):
        try:
            when = dt.datetime.strptime(str(t), "%Y-%m-%dT%H:%M")
        except ValueError:
            continue
        if when.date() != today:
            continue
        if temps[i] is None or codes[i] is None or winds[i] is None:
            continue
        feels_like = feels[i] if i < len(feels) and feels[i] is not None else temps[i]
        direction = directions[i] if i < len(directions) and directions[i] is not None else 0.0
        chance = precip[i] if i < len(precip) and precip[i] is not None else 0
        try:
            out.append(
                HourlyForecast(
                    hour=when.hour,
                    temperature=temps[i],
                    feels_like=feels_like,
                    condition=weather_code_to_condition(int(codes[i])),
                    wind=winds[i],
                    wind_direction=degrees_to_direction(float(direction)),
                    uv=uvs[i] if uvs[i] is not None else 0.0,
                    precipitation_chance=int(chance),
                )
            )
        except (TypeError, ValueError, OverflowError):
            logger.debug("Skipping malformed hourly row", extra={"time": t})
    return out


def parse_forecast(data: Mapping[str, Any], *, fetched_at: dt.datetime | None = None) -> Weather:
    """Turn an Open-Meteo forecast response into a ``Weather``.

    Sunrise, sunset and UV are required; a response without them raises
    ParseFailure rather than defaulting.
    """
    if not isinstance(data, Mapping):
        raise ParseFailure(SOURCE, "response is not a JSON object")

    current = _section(data, "current")
    daily = _section(data, "daily")
    _warn_on_unexpected_units(data.get("current_units"), context="weather_current")

    sunrise_raw = _first(daily, "sunrise")
    sunset_raw = _first(daily, "sunset")
    uv_raw = _first(daily, "uv_index_max")
    if isinstance(uv_raw, bool) or not isinstance(uv_raw, (int, float)) or not math.isfinite(uv_raw):
        raise ParseFailure(SOURCE, "non-numeric daily.uv_index_max")

    try:
        today = dt.date.fromisoformat(str(sunrise_raw).split("T", 1)[0])
    except ValueError:
        today = dt.date.today()

    return Weather(
        temperature=_number(current, "temperature_2m", "current"),
        feels_like=_number(current, "apparent_temperature", "current"),
        condition=weather_code_to_condition(int(_number(current, "weather_code", "current"))),
        humidity=int(_number(current, "relative_humidity_2m", "current")),
        wind=_number(current, "wind_speed_10m", "current"),
        uv=float(uv_raw),
        sunrise=parse_clock_time(sunrise_raw),
        sunset=parse_clock_time(sunset_raw),
        fetched_at=fetched_at or dt.datetime.now(dt.timezone.utc),
        hourly=parse_hourly(data.get("hourly"), today),
    )


def fetch_weather(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "America/Vancouver",
    base_url: str = OPEN_METEO_WEATHER_URL,
    timeout: float = 10,
) -> Weather:
    """Fetch current conditions and today's forecast for the given coordinates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_VARS),
        "daily": ",".join(DAILY_VARS),
        "hourly": ",".join(HOURLY_VARS),
        "forecast_days": 2,
        "timezone": timezone,
    }

    try:
        resp = session.get(base_url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise TransportFailure(SOURCE, str(exc)) from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise ParseFailure(SOURCE, f"invalid JSON: {exc}") from exc

    try:
        return parse_forecast(data)
    except (TypeError, ValueError, ArithmeticError) as exc:
        # a field of the wrong type or range that the schema checks let through
        raise ParseFailure(SOURCE, f"malformed response: {exc}") from exc


class WeatherSource:
    """Cache-backed access to Open-Meteo point forecasts."""

    def __init__(
        self,
        cache: Optional[CacheStore] = None,
        *,
        timezone: str = "America/Vancouver",
        base_url: str = OPEN_METEO_WEATHER_URL,
        timeout: float = 10,
        ttl_hours: float = 24,
    ) -> None:
        self.cache = cache
        self.timezone = timezone
        self.base_url = base_url
        self.timeout = timeout
        self.ttl_hours = ttl_hours

    @staticmethod
    def cache_key(latitude: float, longitude: float) -> str:
        return f"weather_{latitude:.4f}_{longitude:.4f}"

    def fetch(self, latitude: float, longitude: float) -> Weather:
        """Return weather for the coordinates, falling back to cached data when Open-Meteo fails."""
        return fetch_with_cache(
            self.cache,
            self.cache_key(latitude, longitude),
            Weather,
            self.ttl_hours,
            lambda: fetch_weather(
                latitude,
                longitude,
                timezone=self.timezone,
                base_url=self.base_url,
                timeout=self.timeout,
            ),
        )
