"""TTL-aware JSON disk cache used to survive upstream outages.

Each key is stored as ``<cache_root>/<key>.json``::

    {"data": ..., "cached_at": "2026-01-01T08:00:00Z", "expires_at": "..."}

Entries are never purged. ``read`` hands back expired entries too (flagged
with ``is_expired``) so callers can fall back to them when a live fetch fails.
"""

from __future__ import annotations

import datetime as dt
import functools
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Optional, Type, TypeVar

import platformdirs
from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from beach_conditions.errors import CacheIOFailure
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store")

APP_NAME = "beach-conditions"

T = TypeVar("T")


class CacheEntry(BaseModel, Generic[T]):
    """On-disk envelope around a cached payload."""
    data: T
    cached_at: dt.datetime
    expires_at: dt.datetime


@dataclass
class CachedData(Generic[T]):
    """Payload read back from the cache with its freshness."""
    data: T
    cached_at: dt.datetime
    is_expired: bool


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CacheStore:
    """Read and write cache entries under a single directory."""

    def __init__(self, cache_dir: Path | str) -> None:
        """Bind the store to a directory; it is created on first write."""
        self.cache_dir = Path(cache_dir)

    def path_for(self, key: str) -> Path:
        """Return the file backing ``key``."""
        return self.cache_dir / f"{key}.json"

    def write(self, key: str, data: Any, ttl_hours: float) -> None:
        """Persist ``data`` under ``key`` for ``ttl_hours``, replacing any previous entry.

        Raises CacheIOFailure when the directory cannot be created, the payload
        cannot be serialized or the file cannot be written.
        """
        now = _utcnow()
        try:
            payload = to_jsonable_python(data)
        except PydanticSerializationError as exc:
            raise CacheIOFailure(f"Cannot serialize cache entry '{key}': {exc}") from exc

        entry = CacheEntry[Any](
            data=payload,
            cached_at=now,
            expires_at=now + dt.timedelta(hours=ttl_hours),
        )

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            # write beside the target then rename, so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(entry.model_dump_json(indent=2))
                os.replace(tmp_name, self.path_for(key))
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheIOFailure(f"Cannot write cache entry '{key}': {exc}") from exc

        logger.debug("Wrote cache entry", extra={"key": key, "ttl_hours": ttl_hours})

    def read(self, key: str, model: Type[T]) -> Optional[CachedData[T]]:
        """Return the entry for ``key`` validated as ``model``, or None.

        A missing file, an unreadable file and a payload that no longer
        matches ``model`` are all treated as a miss.
        """
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Unreadable cache entry", extra={"key": key, "error": str(exc)})
            return None

        try:
            entry = CacheEntry[model].model_validate_json(raw)  # type: ignore[valid-type]
        except ValidationError as exc:
            logger.info(
                "Discarding cache entry that no longer matches its schema",
                extra={"key": key, "errors": exc.error_count()},
            )
            return None
        except ValueError as exc:
            # bytes that are not valid UTF-8
            logger.info("Discarding undecodable cache entry", extra={"key": key, "error": str(exc)})
            return None

        return CachedData(
            data=entry.data,
            cached_at=entry.cached_at,
            is_expired=_utcnow() > entry.expires_at,
        )


@functools.lru_cache(maxsize=None)
def default_cache_root() -> Optional[Path]:
    """Resolve the per-user cache directory once per process, or None if there is none."""
    try:
        root = platformdirs.user_cache_dir(APP_NAME, appauthor=False)
    except (KeyError, RuntimeError, OSError) as exc:
        logger.warning("No user cache directory available; caching disabled", extra={"error": str(exc)})
        return None
    if not root:
        return None
    return Path(root)


def build_cache_store(settings) -> Optional[CacheStore]:
    """Create the cache configured in ``settings``, or None when caching is off."""
    if not settings.cache_enabled:
        logger.info("Disk cache disabled by configuration")
        return None
    root = Path(settings.cache_dir).expanduser() if settings.cache_dir else default_cache_root()
    if root is None:
        return None
    logger.info("Using disk cache", extra={"cache_dir": str(root)})
    return CacheStore(root)
