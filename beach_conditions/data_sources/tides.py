"""Continuous tide state derived from a table of discrete highs and lows.

Tide tables only list the extrema. Between two of them the water level is
modelled with raised-cosine easing, which gives the slow-fast-slow curve of a
real tide rather than a straight ramp::

    progress = clamp((now - prev) / (next - prev), 0, 1)
    height   = prev.h + (next.h - prev.h) * (1 - cos(progress * pi)) / 2

Near either extremum the level barely moves ("slack water"); once the height
is within ``slack_fraction`` of the range from an extremum the state is
reported as HIGH/LOW instead of RISING/FALLING.

One reference station serves every beach, so results are cached under a single
key and shared by all locations.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from beach_conditions.cache_store import CacheStore
from beach_conditions.errors import NoDataAvailable
from beach_conditions.models import TideEvent, TideInfo, TideState
from beach_conditions.data_sources.tide_table import TidePredictionTable
from beach_conditions.resilience import fetch_with_cache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/tides")

DEFAULT_SLACK_FRACTION = 0.05
# Used only when there is no prediction on either side of "now"; not a real reading.
DEFAULT_NEUTRAL_HEIGHT = 2.5
DEFAULT_NEUTRAL_STATE = TideState.RISING
LOOKAHEAD_DAYS = 2


@dataclass(frozen=True)
class TimedPrediction:
    """A table row pinned to an absolute, timezone-aware instant."""
    at: dt.datetime
    height: float
    is_high: bool


def collect_predictions(
    table: TidePredictionTable,
    start: dt.date,
    days: int,
    tz: ZoneInfo,
) -> List[TimedPrediction]:
    """Gather ``days`` days of predictions from ``start``, sorted by time."""
    out: List[TimedPrediction] = []
    for offset in range(days):
        day = start + dt.timedelta(days=offset)
        for pred in table.predictions_for(day):
            out.append(
                TimedPrediction(
                    at=dt.datetime.combine(pred.date, pred.time, tzinfo=tz),
                    height=pred.height,
                    is_high=pred.is_high,
                )
            )
    out.sort(key=lambda p: p.at)
    return out


def find_surrounding(
    predictions: List[TimedPrediction],
    now: dt.datetime,
) -> Tuple[Optional[TimedPrediction], Optional[TimedPrediction]]:
    """Return the latest prediction at or before ``now`` and the first one after it."""
    prev: Optional[TimedPrediction] = None
    for pred in predictions:
        if pred.at <= now:
            prev = pred
        else:
            return prev, pred
    return prev, None


def raised_cosine(start: float, end: float, progress: float) -> float:
    """Ease from ``start`` to ``end``; ``progress`` is clamped to [0, 1]."""
    progress = min(max(progress, 0.0), 1.0)
    return start + (end - start) * (1.0 - math.cos(progress * math.pi)) / 2.0


def _extremum_state(pred: TimedPrediction) -> TideState:
    return TideState.HIGH if pred.is_high else TideState.LOW


def tide_state_and_height(
    prev: Optional[TimedPrediction],
    next_: Optional[TimedPrediction],
    now: dt.datetime,
    *,
    slack_fraction: float = DEFAULT_SLACK_FRACTION,
    neutral_height: float = DEFAULT_NEUTRAL_HEIGHT,
    neutral_state: TideState = DEFAULT_NEUTRAL_STATE,
) -> Tuple[TideState, float]:
    """Classify the tide and interpolate its height at ``now``."""
    if prev is not None and next_ is not None:
        state = TideState.FALLING if prev.is_high else TideState.RISING

        total = (next_.at - prev.at).total_seconds()
        elapsed = (now - prev.at).total_seconds()
        progress = elapsed / total if total > 0 else 0.5
        height = raised_cosine(prev.height, next_.height, progress)

        threshold = abs(next_.height - prev.height) * slack_fraction
        if abs(height - next_.height) < threshold:
            state = _extremum_state(next_)
        elif abs(height - prev.height) < threshold:
            state = _extremum_state(prev)
        return state, height

    if prev is not None:
        # past the end of the table: hold the last extremum, no extrapolation
        return (TideState.FALLING if prev.is_high else TideState.RISING), prev.height

    if next_ is not None:
        return (TideState.RISING if next_.is_high else TideState.FALLING), next_.height

    logger.warning("No tide predictions around now; using neutral default")
    return neutral_state, neutral_height


def find_next_high_low(
    predictions: List[TimedPrediction],
    now: dt.datetime,
) -> Tuple[Optional[TideEvent], Optional[TideEvent]]:
    """First high and first low strictly after ``now``."""
    next_high: Optional[TideEvent] = None
    next_low: Optional[TideEvent] = None
    for pred in predictions:
        if pred.at <= now:
            continue
        if pred.is_high and next_high is None:
            next_high = TideEvent(time=pred.at, height=pred.height)
        elif not pred.is_high and next_low is None:
            next_low = TideEvent(time=pred.at, height=pred.height)
        if next_high is not None and next_low is not None:
            break
    return next_high, next_low


class TideEngine:
    """Derive ``TideInfo`` from a prediction table, with cache fallback."""

    def __init__(
        self,
        table: TidePredictionTable,
        cache: Optional[CacheStore] = None,
        *,
        ttl_hours: float = 24,
        slack_fraction: float = DEFAULT_SLACK_FRACTION,
        neutral_height: float = DEFAULT_NEUTRAL_HEIGHT,
        neutral_state: TideState = DEFAULT_NEUTRAL_STATE,
    ) -> None:
        self.table = table
        self.cache = cache
        self.ttl_hours = ttl_hours
        self.slack_fraction = slack_fraction
        self.neutral_height = neutral_height
        self.neutral_state = neutral_state
        self.tz = ZoneInfo(table.timezone)

    @property
    def cache_key(self) -> str:
        return f"tides_{self.table.station}"

    def _localize(self, now: dt.datetime | None) -> dt.datetime:
        """Express ``now`` in station time; naive values are taken as station time."""
        if now is None:
            return dt.datetime.now(self.tz)
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def generate(self, now: dt.datetime | None = None) -> TideInfo:
        """Compute tide info for ``now`` straight from the table.

        Raises NoDataAvailable when the table has nothing for today or tomorrow.
        """
        now = self._localize(now)
        predictions = collect_predictions(self.table, now.date(), LOOKAHEAD_DAYS, self.tz)
        if not predictions:
            raise NoDataAvailable(f"No tide predictions for {now.date().isoformat()} at {self.table.station}")

        prev, next_ = find_surrounding(predictions, now)
        state, height = tide_state_and_height(
            prev,
            next_,
            now,
            slack_fraction=self.slack_fraction,
            neutral_height=self.neutral_height,
            neutral_state=self.neutral_state,
        )
        next_high, next_low = find_next_high_low(predictions, now)

        logger.debug(
            "Computed tide state",
            extra={"state": state.value, "height": round(height, 3), "at": now.isoformat()},
        )
        return TideInfo(
            current_height=height,
            tide_state=state,
            next_high=next_high,
            next_low=next_low,
            fetched_at=dt.datetime.now(dt.timezone.utc),
        )

    def fetch(self, now: dt.datetime | None = None) -> TideInfo:
        """Return cached tide info if fresh, else regenerate, else fall back to any cached copy."""
        return fetch_with_cache(
            self.cache,
            self.cache_key,
            TideInfo,
            self.ttl_hours,
            lambda: self.generate(now),
        )
