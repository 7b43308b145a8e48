"""Stale-then-update ladder shared by every upstream source.

The order of preference is always the same:

1. a fresh cache entry, returned without touching the network;
2. a successful live fetch, which is written back to the cache;
3. the last cached value, however old, when the live fetch failed;
4. the live error, only when nothing was ever cached.

``resolve`` holds that decision as a pure function so it can be tested
without any I/O; ``fetch_with_cache`` wires it to a ``CacheStore``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Type, TypeVar

from beach_conditions.cache_store import CacheStore
from beach_conditions.errors import CacheIOFailure, ConditionsError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="resilience")

T = TypeVar("T")


@dataclass
class LiveResult(Generic[T]):
    """Outcome of a live fetch: either a value or the error it raised."""
    value: Optional[T] = None
    error: Optional[ConditionsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def capture(cls, fetch: Callable[[], T]) -> "LiveResult[T]":
        """Run ``fetch`` and record its value or its ConditionsError."""
        try:
            return cls(value=fetch())
        except ConditionsError as exc:
            return cls(error=exc)


def resolve(
    fresh_hit: Optional[T],
    live_result: Optional[LiveResult[T]],
    stale_hit: Optional[T],
) -> T:
    """Pick the value to hand back, or raise the live error."""
    if fresh_hit is not None:
        return fresh_hit
    if live_result is None:
        raise ValueError("live_result is required when there is no fresh cache hit")
    if live_result.ok:
        return live_result.value  # type: ignore[return-value]
    if stale_hit is not None:
        return stale_hit
    raise live_result.error  # type: ignore[misc]


def fetch_with_cache(
    cache: Optional[CacheStore],
    key: str,
    model: Type[T],
    ttl_hours: float,
    fetch_live: Callable[[], T],
) -> T:
    """Run the ladder for ``key`` using ``fetch_live`` as the live source."""
    cached = cache.read(key, model) if cache is not None else None

    if cached is not None and not cached.is_expired:
        logger.debug("Cache hit", extra={"key": key})
        return resolve(cached.data, None, None)

    live = LiveResult.capture(fetch_live)
    if live.ok and cache is not None:
        try:
            cache.write(key, live.value, ttl_hours)
        except CacheIOFailure as exc:
            logger.warning("Could not cache fresh data", extra={"key": key, "error": str(exc)})
    elif not live.ok:
        logger.warning(
            "Live fetch failed",
            extra={"key": key, "error": str(live.error), "has_cache": cached is not None},
        )
        if cached is not None:
            logger.info("Serving stale cache entry", extra={"key": key, "cached_at": cached.cached_at.isoformat()})

    return resolve(None, live, cached.data if cached is not None else None)
