"""Outbound lookups: public IP, geolocation and current weather."""

from .base import GeolocationSource, IPSource, WeatherSource
from .factory import Resolvers, build_resolvers
from .ip_api_client import GeolocationResolver
from .open_meteo_client import WeatherResolver
from .public_ip import PublicIPResolver

__all__ = [
    "build_resolvers",
    "Resolvers",
    "IPSource",
    "GeolocationSource",
    "WeatherSource",
    "PublicIPResolver",
    "GeolocationResolver",
    "WeatherResolver",
]
