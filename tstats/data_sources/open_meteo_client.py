"""Current-conditions lookups against the Open-Meteo forecast API."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from tstats.cache_store import CacheKind, CacheStore
from tstats.data_sources import http
from tstats.errors import NetworkError, WeatherError
from tstats.models import WeatherRecord
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/open_meteo_client")

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_VARS = ["temperature_2m", "weather_code"]

EXPECTED_WEATHER_UNITS = {
    "temperature_2m": "°C",
    "weather_code": "wmo code",
}

# Acceptable alternative units that should not trigger warnings.
ALLOWED_WEATHER_UNIT_SYNONYMS = {
    "temperature_2m": {"°C", "C", "celsius"},
    "weather_code": {"wmo code", "wmo", ""},
}


def _warn_on_unexpected_units(units: dict, *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, expected in EXPECTED_WEATHER_UNITS.items():
        actual = units.get(field)
        if actual is None or actual == expected:
            continue
        if actual not in ALLOWED_WEATHER_UNIT_SYNONYMS.get(field, set()):
            logger.warning(
                "Unexpected Open-Meteo unit %r for %s (expected %r)", actual, field, expected,
                extra={"context": context},
            )


class WeatherResolver:
    """Fetch current temperature and weather code for a coordinate pair."""

    def __init__(self, cache: CacheStore, url: str = OPEN_METEO_WEATHER_URL, *, timeout: Optional[float] = None,
                 http_session: Any = None) -> None:
        self.cache = cache
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.http_session = http_session

    def resolve(self, latitude: float, longitude: float, *, force_refresh: bool = False) -> WeatherRecord:
        """
        Return current conditions at (latitude, longitude).

        A valid cached record is returned as-is without comparing its
        coordinates to the requested ones.
        """
        if not force_refresh:
            cached = self.cache.read(CacheKind.WEATHER)
            if cached is not None:
                logger.info("Using cached weather observed at %s", cached.current.time)
                return cached

        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join(CURRENT_VARS),
        }
        try:
            resp = http.get(self.url, params=params, timeout=self.timeout, http_session=self.http_session)
        except NetworkError as exc:
            raise WeatherError(f"weather API request failed: {exc}") from exc

        body = resp.content
        try:
            record = WeatherRecord.model_validate_json(body)
        except ValidationError as exc:
            raise WeatherError(f"error decoding weather data: {exc}") from exc

        self.cache.write(CacheKind.WEATHER, body)
        _warn_on_unexpected_units(record.current_units.model_dump(), context="weather_current")
        logger.info("Weather resolved: %.1f%s, code %d", record.temperature, record.temperature_unit,
                    record.weather_code)
        return record
