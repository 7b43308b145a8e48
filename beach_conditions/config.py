"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the beach conditions service."""
    model_config = SettingsConfigDict(env_prefix="BEACH_", extra="ignore")

    log_level: str = "INFO"

    # disk cache; cache_dir overrides the per-user platform cache directory
    cache_enabled: bool = True
    cache_dir: str | None = None
    weather_ttl_hours: int = 24
    water_quality_ttl_hours: int = 24
    tide_ttl_hours: int = 24

    timezone: str = "America/Vancouver"
    http_timeout_seconds: float = 10.0
    open_meteo_url: str = "https://api.open-meteo.com/v1/forecast"
    water_quality_url: str = (
        "https://opendata.vancouver.ca/api/explore/v2.1/catalog/datasets/beach-water-quality/records"
    )

    tide_table_path: str | None = None
    tide_slack_fraction: float = 0.05
    tide_neutral_height: float = 2.5

    stale_sample_days: int = 7

    @field_validator("open_meteo_url", "water_quality_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("tide_slack_fraction", mode="after")
    @classmethod
    def check_slack_fraction(cls, v: float) -> float:
        """Slack fraction is a share of the tidal range."""
        if not 0.0 <= v < 0.5:
            raise ValueError("tide_slack_fraction must be in [0, 0.5)")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
