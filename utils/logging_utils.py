"""
Process-wide logging setup for the beach conditions service.

Usage
-----
Entrypoints (the API server, the manual ``conditions_service`` run) call:

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="beach_conditions")

Modules grab a tagged adapter at import time and pass structured context
through ``extra``:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="water_quality_client")
    logger.warning("Live fetch failed", extra={"key": key, "error": str(exc)})

which renders as::

    2026-01-01 08:00:00 | WARNING | beach_conditions | water_quality_client | beach_conditions.data_sources.water_quality_client | Live fetch failed | key=water_quality_kitsilano-beach error=...

INFO and below go to stdout; WARNING and above go to stderr.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

# Records emitted before setup_logging() still get a timestamp and level.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "tag", "job_name", "taskName"}

_CONFIGURED: bool = False


class MaxLevelFilter(logging.Filter):
    """Pass only records at or below ``max_level``."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class RecordDefaultsFilter(logging.Filter):
    """Fill in ``tag`` and ``job_name`` on records that lack them.

    The tag falls back to the last segment of the logger name, the job name
    to the process-level value given to ``setup_logging`` ("-" when unset).
    """

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self.job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            record.tag = record.name.rsplit(".", 1)[-1] if record.name else "-"
        if not hasattr(record, "job_name"):
            record.job_name = self.job_name
        return True


class ContextFormatter(logging.Formatter):
    """Standard formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{line} | {pairs}"


class TaggedLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that keeps per-call ``extra`` alongside its own tag."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the fields a record received through ``extra``."""
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Build the dictConfig used by ``setup_logging``.

    Parameters
    ----------
    level:
        Root logger level (e.g., "DEBUG", "INFO", logging.INFO).
    log_format:
        Formatter pattern; may reference ``job_name`` and ``tag``.
    date_format:
        Formatter pattern for timestamps.
    job_name:
        Logical name of the process, e.g. "beach_conditions".
    """
    def stream_handler(stream: str, handler_level: str, filters: list) -> Dict[str, Any]:
        return {
            "class": "logging.StreamHandler",
            "formatter": "context",
            "filters": filters,
            "level": handler_level,
            "stream": stream,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "defaults": {"()": RecordDefaultsFilter, "job_name": job_name},
            "info_and_below": {"()": MaxLevelFilter, "max_level": logging.INFO},
        },
        "formatters": {
            "context": {
                "()": ContextFormatter,
                "fmt": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": stream_handler("ext://sys.stdout", "DEBUG", ["defaults", "info_and_below"]),
            "stderr": stream_handler("ext://sys.stderr", "WARNING", ["defaults"]),
        },
        "root": {"level": level, "handlers": ["stdout", "stderr"]},
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """
    Configure logging once per process.

    Both ``run_server.py`` and ``beach_conditions.main`` call this; later calls
    are no-ops unless ``override_existing`` is True.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(
        build_logging_config(
            level=level,
            log_format=log_format,
            date_format=date_format,
            job_name=job_name,
        )
    )
    _CONFIGURED = True


def get_tagged_logger(name: str, *, tag: Optional[str] = None) -> TaggedLoggerAdapter:
    """Return an adapter whose records carry ``tag`` (default: last segment of ``name``)."""
    return TaggedLoggerAdapter(logging.getLogger(name), {"tag": tag or name.rsplit(".", 1)[-1]})
