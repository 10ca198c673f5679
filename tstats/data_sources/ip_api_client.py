"""IP-to-location lookups against the ip-api.com JSON endpoint."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from tstats.cache_store import CacheKind, CacheStore
from tstats.data_sources import http
from tstats.errors import DecodeError, GeolocationError
from tstats.models import GeolocationRecord
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/ip_api_client")

DEFAULT_GEO_URL = "http://ip-api.com/json"


class GeolocationResolver:
    """Resolve an address to a GeolocationRecord, consulting the cache first."""

    def __init__(self, cache: CacheStore, url: str = DEFAULT_GEO_URL, *, timeout: Optional[float] = None,
                 http_session: Any = None) -> None:
        self.cache = cache
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.http_session = http_session

    def resolve(self, ip: str, *, force_refresh: bool = False) -> GeolocationRecord:
        """
        Return the location for `ip`.

        A valid cached record short-circuits the request. Otherwise the raw
        response is written to the cache before it is interpreted, so a
        provider-side failure is still on disk for inspection; the cache's own
        status check keeps it from ever being served as a hit.
        """
        if not force_refresh:
            cached = self.cache.read(CacheKind.GEOLOCATION)
            if cached is not None:
                logger.info("Using cached geolocation for %s", cached.city)
                return cached

        resp = http.get(f"{self.url}/{ip}", timeout=self.timeout, http_session=self.http_session)
        body = resp.content
        self.cache.write(CacheKind.GEOLOCATION, body)

        try:
            record = GeolocationRecord.model_validate_json(body)
        except ValidationError as exc:
            raise DecodeError(f"error decoding geolocation response: {exc}") from exc

        if not record.ok:
            raise GeolocationError(record.status, record.message)

        logger.info("Geolocation resolved: %s, %s (%s, %s)", record.city, record.country,
                    record.latitude, record.longitude)
        return record
