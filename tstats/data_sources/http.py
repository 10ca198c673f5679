"""Shared requests session and the single GET helper used by every resolver."""
from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from tstats.errors import NetworkError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http")

session = requests.Session()


def get(
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    timeout: Optional[float] = None,
    http_session: Any = None,
) -> requests.Response:
    """
    Issue one GET and return the response, raising NetworkError on any failure.

    Transport errors and non-2xx statuses are both reported as NetworkError so
    callers never see a requests exception. There is no retry.
    """
    client = http_session if http_session is not None else session
    try:
        resp = client.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.exceptions.RequestException as exc:
        logger.info("GET %s failed: %s", url, exc)
        raise NetworkError(f"request to {url} failed: {exc}") from exc
    # raise_for_status lets 1xx/3xx through
    if not 200 <= resp.status_code < 300:
        logger.info("GET %s returned status %s", url, resp.status_code)
        raise NetworkError(f"request to {url} returned unexpected status {resp.status_code}")
    logger.debug("GET %s -> %s", url, resp.status_code)
    return resp
