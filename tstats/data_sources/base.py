"""Interfaces for the three lookups the pipeline chains together."""

from __future__ import annotations

from typing import Protocol

from tstats.models import GeolocationRecord, WeatherRecord


class IPSource(Protocol):
    """Anything that can report the caller's public address."""

    def resolve(self) -> str:
        """Return the public IP address."""
        ...


class GeolocationSource(Protocol):
    """Anything that can map an address to a location."""

    def resolve(self, ip: str, *, force_refresh: bool = False) -> GeolocationRecord:
        """Return the location for `ip`."""
        ...


class WeatherSource(Protocol):
    """Anything that can report current conditions at a coordinate pair."""

    def resolve(self, latitude: float, longitude: float, *, force_refresh: bool = False) -> WeatherRecord:
        """Return current conditions."""
        ...
