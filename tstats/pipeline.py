"""Cache-checked chain of public IP, geolocation and weather lookups.

The pipeline is a fixed sequence with one branch:

    CHECKING_CACHE -> DONE                                          (both caches valid)
    CHECKING_CACHE -> FETCHING_WEATHER -> DONE                      (only geolocation cached)
    CHECKING_CACHE -> FETCHING_IP -> FETCHING_GEO -> FETCHING_WEATHER -> DONE

Any stage may end in FAILED instead. Every state entered produces exactly one
ProgressEvent for the registered listeners.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, List, Optional

from tstats.cache_store import CacheKind, CacheStore
from tstats.data_sources.base import GeolocationSource, IPSource, WeatherSource
from tstats.errors import PipelineError
from tstats.models import GeolocationRecord, WeatherRecord
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="pipeline")


class PipelineState(str, enum.Enum):
    CHECKING_CACHE = "checking_cache"
    FETCHING_IP = "fetching_ip"
    FETCHING_GEO = "fetching_geo"
    FETCHING_WEATHER = "fetching_weather"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


STATE_LABELS = {
    PipelineState.CHECKING_CACHE: "Checking cache",
    PipelineState.FETCHING_IP: "Fetching public IP",
    PipelineState.FETCHING_GEO: "Fetching geolocation",
    PipelineState.FETCHING_WEATHER: "Fetching weather",
    PipelineState.DONE: "Done",
    PipelineState.FAILED: "Failed",
}


@dataclass(frozen=True)
class ProgressEvent:
    """One state transition, as seen by the presentation layer."""
    state: PipelineState
    label: str
    city: Optional[str] = None
    temperature: Optional[float] = None
    temperature_unit: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class PipelineResult:
    """Final geolocation and weather, and whether both came from the cache."""
    geolocation: GeolocationRecord
    weather: WeatherRecord
    from_cache: bool


Listener = Callable[[ProgressEvent], None]


class WeatherPipeline:
    """Sequence the cache check and the three lookups, notifying listeners."""

    def __init__(
        self,
        cache: CacheStore,
        ip_source: IPSource,
        geolocation_source: GeolocationSource,
        weather_source: WeatherSource,
        listeners: Optional[List[Listener]] = None,
    ) -> None:
        self.cache = cache
        self.ip_source = ip_source
        self.geolocation_source = geolocation_source
        self.weather_source = weather_source
        self._listeners: List[Listener] = list(listeners or [])
        self.state: Optional[PipelineState] = None

    def subscribe(self, listener: Listener) -> None:
        """Register a callable that receives every ProgressEvent."""
        self._listeners.append(listener)

    def _enter(self, state: PipelineState, **details) -> None:
        self.state = state
        event = ProgressEvent(state=state, label=STATE_LABELS[state], **details)
        logger.debug("Pipeline state -> %s", state.value)
        for listener in self._listeners:
            listener(event)

    def run(self, *, force_refresh: bool = False) -> PipelineResult:
        """
        Produce the current weather for the caller's location.

        With `force_refresh` both cache files are removed before the check, so
        every lookup goes to the network. Raises the PipelineError that stopped
        the run after emitting a FAILED event.
        """
        try:
            if force_refresh:
                logger.info("Force refresh requested; clearing caches")
                self.cache.clear()
            return self._run(force_refresh)
        except PipelineError as exc:
            logger.info("Pipeline failed in %s: %s", self.state.value if self.state else "-", exc)
            self._enter(PipelineState.FAILED, error_kind=exc.kind, error_message=str(exc))
            raise
        except OSError as exc:
            logger.info("Cache directory error: %s", exc)
            self._enter(PipelineState.FAILED, error_kind="cache", error_message=str(exc))
            raise

    def _run(self, force_refresh: bool) -> PipelineResult:
        self._enter(PipelineState.CHECKING_CACHE)
        geolocation = None if force_refresh else self.cache.read(CacheKind.GEOLOCATION)
        weather = None
        if geolocation is not None:
            weather = self.cache.read(CacheKind.WEATHER)
            if weather is not None:
                return self._done(geolocation, weather, from_cache=True)

        fetched_geo = geolocation is None
        if fetched_geo:
            # weather left by an earlier location must not survive into a run
            # that fails after the new geolocation is cached
            self.cache.clear(CacheKind.WEATHER)

            self._enter(PipelineState.FETCHING_IP)
            ip = self.ip_source.resolve()

            self._enter(PipelineState.FETCHING_GEO)
            geolocation = self.geolocation_source.resolve(ip, force_refresh=force_refresh)

        self._enter(PipelineState.FETCHING_WEATHER)
        weather = self.weather_source.resolve(
            geolocation.latitude, geolocation.longitude, force_refresh=force_refresh or fetched_geo,
        )
        return self._done(geolocation, weather, from_cache=False)

    def _done(self, geolocation: GeolocationRecord, weather: WeatherRecord, *, from_cache: bool) -> PipelineResult:
        self._enter(
            PipelineState.DONE,
            city=geolocation.city,
            temperature=weather.temperature,
            temperature_unit=weather.temperature_unit,
        )
        return PipelineResult(geolocation=geolocation, weather=weather, from_cache=from_cache)
