"""Command configuration pulled from environment variables via pydantic."""
import tempfile

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the tstats command."""
    model_config = SettingsConfigDict(env_prefix="TSTATS_", extra="ignore")

    cache_dir: str = tempfile.gettempdir()
    cache_ttl_seconds: int = 3600
    geo_cache_filename: str = "geoinfo_cache.json"
    weather_cache_filename: str = "weather_cache.json"
    ip_echo_url: str = "https://api.ipify.org"
    geo_url: str = "http://ip-api.com/json"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    http_timeout_seconds: float | None = None  # None keeps requests' blocking default
    log_level: str = "WARNING"
    show_progress: bool = True

    @field_validator("geo_url", "forecast_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("cache_ttl_seconds", mode="after")
    @classmethod
    def positive_ttl(cls, v: int) -> int:
        """A zero or negative TTL would make every cache read a miss."""
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
