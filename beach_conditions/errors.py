"""Error taxonomy shared by the cache and the upstream sources.

Every error raised by this package derives from ``ConditionsError`` so that
callers (the orchestrator in particular) can catch the whole family at once.
"""

from __future__ import annotations


class ConditionsError(Exception):
    """Base exception for all conditions-retrieval errors."""


class TransportFailure(ConditionsError):
    """Raised when an upstream request fails at the network or HTTP layer."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"{source} request failed: {detail}")


class ParseFailure(ConditionsError):
    """Raised when an upstream response does not match the expected schema."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"Could not parse {source} response: {detail}")


class NoDataAvailable(ConditionsError):
    """Raised when the tide table does not cover the requested date."""


class CacheIOFailure(ConditionsError):
    """Raised when a cache entry cannot be serialized or written to disk."""
