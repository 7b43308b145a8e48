"""Reference tide predictions loaded from a swappable JSON data file.

The tide engine only sees the ``TidePredictionTable`` protocol: an ordered
sequence of predictions per calendar day plus the station timezone. The JSON
file shipped in ``data/`` covers Point Atkinson (station 7735) for January
2026; point ``BEACH_TIDE_TABLE_PATH`` at another file with the same layout to
swap it.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, ValidationError

from beach_conditions.errors import ParseFailure
from beach_conditions.models import TidePrediction
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/tide_table")

DEFAULT_TABLE_PATH = Path(__file__).resolve().parent / "data" / "point_atkinson_2026_01.json"


class TidePredictionTable(Protocol):
    """Anything that can list the tide extrema for a given day."""

    station: str
    timezone: str

    def predictions_for(self, date: dt.date) -> List[TidePrediction]:
        """Return the predictions for ``date`` in ascending time order (empty if uncovered)."""
        ...


class TideTableFile(BaseModel):
    """Layout of a tide table JSON file."""
    station: str
    station_id: Optional[str] = None
    timezone: str
    units: str = "m"
    predictions: List[TidePrediction]


class StaticTideTable(TidePredictionTable):
    """In-memory table indexed by date."""

    def __init__(self, predictions: Iterable[TidePrediction], *, station: str, timezone: str) -> None:
        self.station = station
        self.timezone = timezone
        by_date: Dict[dt.date, List[TidePrediction]] = defaultdict(list)
        for pred in predictions:
            by_date[pred.date].append(pred)
        self._by_date = {d: sorted(preds, key=lambda p: p.time) for d, preds in by_date.items()}

    def predictions_for(self, date: dt.date) -> List[TidePrediction]:
        return list(self._by_date.get(date, []))

    @property
    def first_date(self) -> Optional[dt.date]:
        return min(self._by_date) if self._by_date else None

    @property
    def last_date(self) -> Optional[dt.date]:
        return max(self._by_date) if self._by_date else None

    def __len__(self) -> int:
        return sum(len(preds) for preds in self._by_date.values())

    @classmethod
    def from_json(cls, path: Path | str) -> "StaticTideTable":
        """Load a table from a JSON file (see ``TideTableFile``)."""
        path = Path(path)
        try:
            parsed = TideTableFile.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ParseFailure("tide table", f"cannot read {path}: {exc}") from exc
        except ValidationError as exc:
            raise ParseFailure("tide table", f"{path}: {exc}") from exc

        table = cls(parsed.predictions, station=parsed.station, timezone=parsed.timezone)
        logger.info(
            "Loaded tide table",
            extra={
                "path": str(path),
                "station": table.station,
                "rows": len(table),
                "first_date": str(table.first_date),
                "last_date": str(table.last_date),
            },
        )
        return table


def load_tide_table(path: Path | str | None = None) -> StaticTideTable:
    """Load the configured table, defaulting to the bundled Point Atkinson data."""
    return StaticTideTable.from_json(path or DEFAULT_TABLE_PATH)
