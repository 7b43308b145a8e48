"""Rough crowd estimates for Vancouver beaches.

There is no live occupancy feed, so crowding is modelled as the product of a
season factor, a day-of-week factor and an hour-of-day factor. The result is
0.0 for an empty beach and 1.0 for a packed one.
"""

from __future__ import annotations

import datetime as dt

SATURDAY = 5
SUNDAY = 6
FRIDAY = 4


def season_factor(month: int) -> float:
    """Summer is busiest; winter barely registers."""
    if 6 <= month <= 8:
        return 1.0
    if month in (5, 9):
        return 0.6
    if month in (4, 10):
        return 0.3
    return 0.1


def day_factor(weekday: int) -> float:
    """Weekday uses ``date.weekday()`` numbering, Monday is 0."""
    if weekday in (SATURDAY, SUNDAY):
        return 1.0
    if weekday == FRIDAY:
        return 0.7
    return 0.4


def hour_factor(hour: int) -> float:
    """Early afternoon peaks, nights are near empty."""
    if 12 <= hour <= 16:
        return 1.0
    if 10 <= hour <= 11 or 17 <= hour <= 18:
        return 0.7
    if 8 <= hour <= 9 or 19 <= hour <= 20:
        return 0.4
    if 6 <= hour <= 7 or hour == 21:
        return 0.2
    return 0.1


def estimate_crowd(month: int, weekday: int, hour: int) -> float:
    """Estimated crowd level in 0..1 for the given month, weekday and hour."""
    crowd = season_factor(month) * day_factor(weekday) * hour_factor(hour)
    return max(0.0, min(1.0, crowd))


def estimate_crowd_at(when: dt.datetime | dt.date, hour: int | None = None) -> float:
    """Convenience wrapper taking a date or datetime; ``hour`` overrides the datetime's hour."""
    if hour is None:
        hour = when.hour if isinstance(when, dt.datetime) else 12
    return estimate_crowd(when.month, when.weekday(), hour)
