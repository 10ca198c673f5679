"""Public address lookup against a plain-text IP echo service."""
from __future__ import annotations

from typing import Any, Optional

from tstats.data_sources import http
from tstats.errors import NetworkError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/public_ip")

DEFAULT_IP_ECHO_URL = "https://api.ipify.org"


class PublicIPResolver:
    """Ask an echo endpoint for the caller's public IPv4/IPv6 address."""

    def __init__(self, url: str = DEFAULT_IP_ECHO_URL, *, timeout: Optional[float] = None,
                 http_session: Any = None) -> None:
        self.url = url
        self.timeout = timeout
        self.http_session = http_session

    def resolve(self) -> str:
        """Return the trimmed response body; an empty body is a NetworkError."""
        resp = http.get(self.url, timeout=self.timeout, http_session=self.http_session)
        address = (resp.text or "").strip()
        if not address:
            raise NetworkError(f"{self.url} returned an empty body")
        logger.info("Public IP resolved: %s", address)
        return address
