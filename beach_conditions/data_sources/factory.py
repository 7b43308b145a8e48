"""Factory helpers for wiring the cache-backed sources at startup."""

from __future__ import annotations

from beach_conditions import config
from beach_conditions.cache_store import build_cache_store
from beach_conditions.data_sources.base import CallableConditionsDataSource, ConditionsDataSource
from beach_conditions.data_sources.open_meteo_client import WeatherSource
from beach_conditions.data_sources.tide_table import load_tide_table
from beach_conditions.data_sources.tides import TideEngine
from beach_conditions.data_sources.water_quality_client import WaterQualitySource
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_data_source(settings: config.Settings | None = None) -> ConditionsDataSource:
    """Instantiate the weather, water-quality and tide sources sharing one disk cache."""
    settings = settings or config.settings
    cache = build_cache_store(settings)

    weather = WeatherSource(
        cache,
        timezone=settings.timezone,
        base_url=settings.open_meteo_url,
        timeout=settings.http_timeout_seconds,
        ttl_hours=settings.weather_ttl_hours,
    )
    water_quality = WaterQualitySource(
        cache,
        base_url=settings.water_quality_url,
        timeout=settings.http_timeout_seconds,
        ttl_hours=settings.water_quality_ttl_hours,
        stale_days=settings.stale_sample_days,
    )
    tides = TideEngine(
        load_tide_table(settings.tide_table_path),
        cache,
        ttl_hours=settings.tide_ttl_hours,
        slack_fraction=settings.tide_slack_fraction,
        neutral_height=settings.tide_neutral_height,
    )

    logger.info(
        "Built conditions data source",
        extra={"cache": cache is not None, "tide_station": tides.table.station},
    )
    return CallableConditionsDataSource(
        weather=weather.fetch,
        water_quality=water_quality.fetch,
        tides=tides.fetch,
    )
