"""Application configuration pulled from environment variables via pydantic."""
import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Environment-driven configuration for the event weather dashboard."""
    model_config = SettingsConfigDict(env_prefix="EVENTWX_", extra="ignore")

    event_config_path: str = str(PROJECT_ROOT / "config" / "event.config.json")

    # cache
    cache_backend: str = "memory"  # options: memory, disk
    cache_dir: str = str(PROJECT_ROOT / "data" / "cache")
    cache_ttl_weather: int = 300
    cache_ttl_radar: int = 120
    cache_ttl_satellite: int = 300
    cache_ttl_forecast: int = 3600
    cache_ttl_alerts: int = 60
    cache_ttl_key_points: int = 3600
    cache_ttl_gridpoint_meta: int = 3600

    # upstream sources
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "EventWeatherDashboard/1.0"
    http_timeout_seconds: float = 30.0
    observation_sources: str = "synoptic,nws"
    synoptic_base_url: str = "https://api.synopticdata.com/v2"
    synoptic_token: str | None = None
    synoptic_radius_miles: int = 50
    synoptic_within_minutes: int = 120
    radar_wms_url: str = "https://opengeo.ncep.noaa.gov/geoserver/conus/conus_bref_qcd/ows"
    radar_layer: str = "conus_bref_qcd"
    radar_style: str = "radar_reflectivity"
    radar_loop_minutes: int = 30
    satellite_times_url: str = "https://realearth.ssec.wisc.edu/api/times"
    satellite_tile_url: str = "https://realearth.ssec.wisc.edu/api/image"
    satellite_loop_minutes: int = 30
    satellite_default_channel: str = "G18-ABI-CONUS-BAND02"

    # forecast + charts
    forecast_hours: int = 24
    chart_width: int = 960
    chart_height: int = 160

    # refresh scheduler (seconds)
    refresh_enabled: bool = True
    refresh_weather_seconds: int = 300
    refresh_forecast_seconds: int = 1800
    refresh_alerts_seconds: int = 60
    refresh_radar_seconds: int = 120
    refresh_satellite_seconds: int = 300

    # key points summarizer
    key_points_enabled: bool = True
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "phi4-mini"
    ollama_retries: int = 1
    ollama_retry_backoff_seconds: float = 0.5
    ollama_timeout_seconds: float = 180.0
    ollama_options: dict = Field(
        default_factory=lambda: {
            "temperature": float(os.getenv("EVENTWX_OLLAMA_TEMPERATURE", 0.3)),
            "num_predict": int(os.getenv("EVENTWX_OLLAMA_NUM_PREDICT", 300)),
        }
    )

    @field_validator("ollama_base_url", "nws_base_url", "synoptic_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("cache_backend", mode="after")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        """Accept any casing for the cache backend name."""
        return str(v).strip().lower()

    def observation_source_names(self) -> list[str]:
        """Return the configured observation sources in priority order."""
        return [s.strip().lower() for s in self.observation_sources.split(",") if s.strip()]


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
