"""File-backed cache for the geolocation and weather responses.

Each kind lives in its own file inside one directory (the platform temp dir by
default). Files hold the provider's raw JSON bytes with no envelope: freshness
is derived from the file's modification time on every read, so there is no
stored expiry to go stale.
"""
from __future__ import annotations

import enum
import os
import tempfile
import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from tstats.config import Settings, settings as default_settings
from tstats.errors import CacheWriteWarning
from tstats.models import GeolocationRecord, WeatherRecord
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store")

Record = Union[GeolocationRecord, WeatherRecord]


class CacheKind(str, enum.Enum):
    """The two independent documents kept in the cache directory."""
    GEOLOCATION = "geolocation"
    WEATHER = "weather"


_RECORD_TYPES: dict[CacheKind, Type[BaseModel]] = {
    CacheKind.GEOLOCATION: GeolocationRecord,
    CacheKind.WEATHER: WeatherRecord,
}


@dataclass(frozen=True)
class CacheEntry:
    """Raw cached bytes with the file's modification time."""
    kind: CacheKind
    path: Path
    data: bytes
    modified_at: float
    age_seconds: float


class CacheStore:
    """Read/write/clear the cache files with a single TTL for both kinds."""

    def __init__(
        self,
        directory: Union[str, Path],
        ttl_seconds: int,
        *,
        geo_filename: str = "geoinfo_cache.json",
        weather_filename: str = "weather_cache.json",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self._filenames = {
            CacheKind.GEOLOCATION: geo_filename,
            CacheKind.WEATHER: weather_filename,
        }
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CacheStore":
        """Build a store from the configured directory, TTL and file names."""
        settings = settings or default_settings
        return cls(
            settings.cache_dir,
            settings.cache_ttl_seconds,
            geo_filename=settings.geo_cache_filename,
            weather_filename=settings.weather_cache_filename,
        )

    def path_for(self, kind: CacheKind) -> Path:
        return self.directory / self._filenames[CacheKind(kind)]

    def read_entry(self, kind: CacheKind) -> Optional[CacheEntry]:
        """Return the raw entry if it exists and is younger than the TTL."""
        path = self.path_for(kind)
        try:
            modified_at = path.stat().st_mtime
        except FileNotFoundError:
            logger.debug("Cache miss: %s file absent (%s)", kind.value, path)
            return None
        except OSError as exc:
            logger.debug("Cache miss: cannot stat %s: %s", path, exc)
            return None

        age = self._clock() - modified_at
        if age >= self.ttl_seconds:
            logger.debug("Cache miss: %s entry is %.0fs old (ttl %ss)", kind.value, age, self.ttl_seconds)
            return None

        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Cache miss: cannot read %s: %s", path, exc)
            return None
        return CacheEntry(kind=CacheKind(kind), path=path, data=data, modified_at=modified_at, age_seconds=age)

    def read(self, kind: CacheKind) -> Optional[Record]:
        """
        Return the cached record for `kind`, or None when there is no valid entry.

        Absent, unreadable, expired and unparseable files are all misses. A
        geolocation document whose status is not "success" is a miss too, even
        though the resolver persisted it.
        """
        entry = self.read_entry(kind)
        if entry is None:
            return None

        model = _RECORD_TYPES[entry.kind]
        try:
            record = model.model_validate_json(entry.data)
        except ValidationError as exc:
            logger.debug("Cache miss: %s entry does not parse: %s", entry.kind.value, exc.errors()[:1])
            return None

        if isinstance(record, GeolocationRecord) and not record.ok:
            logger.debug("Cache miss: cached geolocation has status %r", record.status)
            return None

        logger.debug("Cache hit: %s (age %.0fs)", entry.kind.value, entry.age_seconds)
        return record

    def write(self, kind: CacheKind, data: bytes) -> bool:
        """
        Persist raw bytes for `kind`, replacing the previous file atomically.

        Failures are reported as a CacheWriteWarning and return False; they
        never raise.
        """
        path = self.path_for(kind)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb", dir=self.directory, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            warnings.warn(
                CacheWriteWarning(f"failed to write {CacheKind(kind).value} cache {path}: {exc}"),
                stacklevel=2,
            )
            return False

        logger.debug("Wrote %d bytes to %s", len(data), path)
        return True

    def clear(self, kind: CacheKind | None = None) -> None:
        """Delete one cache file, or both when `kind` is None; absent files are fine."""
        kinds = [CacheKind(kind)] if kind is not None else list(CacheKind)
        for k in kinds:
            path = self.path_for(k)
            try:
                path.unlink()
                logger.info("Removed %s cache %s", k.value, path)
            except FileNotFoundError:
                continue
