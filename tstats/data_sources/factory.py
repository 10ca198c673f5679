"""Factory helpers for wiring the resolvers from configuration."""

from __future__ import annotations

from dataclasses import dataclass

from tstats import config
from tstats.cache_store import CacheStore
from tstats.data_sources.base import GeolocationSource, IPSource, WeatherSource
from tstats.data_sources.ip_api_client import GeolocationResolver
from tstats.data_sources.open_meteo_client import WeatherResolver
from tstats.data_sources.public_ip import PublicIPResolver
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


@dataclass
class Resolvers:
    """The three lookups plus the cache they share."""
    cache: CacheStore
    ip: IPSource
    geolocation: GeolocationSource
    weather: WeatherSource


def build_resolvers(settings: config.Settings | None = None, cache: CacheStore | None = None) -> Resolvers:
    """Instantiate the resolvers against the configured endpoints and cache."""
    settings = settings or config.settings
    cache = cache or CacheStore.from_settings(settings)
    timeout = settings.http_timeout_seconds

    logger.debug(
        "Building resolvers (cache_dir=%s, ttl=%ss, timeout=%s)",
        cache.directory, cache.ttl_seconds, timeout,
    )
    return Resolvers(
        cache=cache,
        ip=PublicIPResolver(settings.ip_echo_url, timeout=timeout),
        geolocation=GeolocationResolver(cache, settings.geo_url, timeout=timeout),
        weather=WeatherResolver(cache, settings.forecast_url, timeout=timeout),
    )
