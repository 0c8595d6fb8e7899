"""
Time helpers shared by the datetime/duration transforms and partitions.

- TIME_PARTS: reductions of a datetime to a bounded part (day of week, month...)
- unit walking: start_of() / add_unit() in a given timezone
- automatic resolution selection for datetime and duration ranges
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import pandas as pd

from .values import resolve_zone

# Upper bound on the number of bins an automatic resolution aims for
AUTO_RESOLUTION_TARGET = 50

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


@dataclass(frozen=True)
class TimePart:
    """
    A reduction of a datetime to a coarser value.

    Fields:

    - description: the identifier used as `transformed_format`
    - type: 'continuous' or 'categorial', the facet type after reduction
    - min / max: fixed bounds for continuous parts (unused when `calculate` is set)
    - calculate: bounds come from transforming the facet's own min/max (fi. Year)
    - groups: the fixed category labels for categorial parts
    """
    description: str
    type: str
    extract: Callable[[pd.Timestamp], object]
    min: Optional[int] = None
    max: Optional[int] = None
    calculate: bool = False
    groups: List[str] = field(default_factory=list)


_TIME_PART_LIST = [
    TimePart("Year", "continuous", lambda t: float(t.year), calculate=True),
    TimePart("Quarter (1-4)", "continuous", lambda t: float(t.quarter), 1, 4),
    TimePart("Month (1-12)", "continuous", lambda t: float(t.month), 1, 12),
    TimePart("Month (January)", "categorial", lambda t: MONTH_NAMES[t.month - 1], groups=list(MONTH_NAMES)),
    TimePart("Week of year (1-53)", "continuous", lambda t: float(t.isocalendar()[1]), 1, 53),
    TimePart("Day of month (1-31)", "continuous", lambda t: float(t.day), 1, 31),
    TimePart("Day of year (1-366)", "continuous", lambda t: float(t.dayofyear), 1, 366),
    TimePart("Day of week (1-7)", "continuous", lambda t: float(t.isoweekday()), 1, 7),
    TimePart("Day of week (Monday)", "categorial", lambda t: DAY_NAMES[t.weekday()], groups=list(DAY_NAMES)),
    TimePart("Hour (0-23)", "continuous", lambda t: float(t.hour), 0, 23),
    TimePart("Minute (0-59)", "continuous", lambda t: float(t.minute), 0, 59),
    TimePart("Second (0-59)", "continuous", lambda t: float(t.second), 0, 59),
]

TIME_PARTS: Dict[str, TimePart] = {p.description: p for p in _TIME_PART_LIST}


def get_time_part(description: str) -> Optional[TimePart]:
    return TIME_PARTS.get(description)


# -------------------------------------------------------------------------
# Datetime units
# -------------------------------------------------------------------------
DATETIME_UNITS = ["milliseconds", "seconds", "minutes", "hours", "days", "weeks", "months", "years"]

_APPROX_UNIT_LENGTH = {
    "milliseconds": pd.Timedelta(milliseconds=1),
    "seconds": pd.Timedelta(seconds=1),
    "minutes": pd.Timedelta(minutes=1),
    "hours": pd.Timedelta(hours=1),
    "days": pd.Timedelta(days=1),
    "weeks": pd.Timedelta(weeks=1),
    "months": pd.Timedelta(days=30.436875),
    "years": pd.Timedelta(days=365.2425),
}

_CALENDAR_OFFSETS = {
    "days": pd.DateOffset(days=1),
    "weeks": pd.DateOffset(weeks=1),
    "months": pd.DateOffset(months=1),
    "years": pd.DateOffset(years=1),
}

_MIDNIGHT = dict(hour=0, minute=0, second=0, microsecond=0, nanosecond=0)


def _local_midnight(t: pd.Timestamp, days_back: int = 0, **fields: int) -> pd.Timestamp:
    """
    Midnight of the wall-clock date of `t` (moved by `fields` and `days_back`).
    A midnight skipped by a DST change becomes the first valid instant after it.
    """
    naive = t.tz_localize(None).replace(**fields, **_MIDNIGHT) - pd.Timedelta(days=days_back)
    return naive.tz_localize(t.tz, ambiguous=True, nonexistent="shift_forward")


def start_of(ts: pd.Timestamp, unit: str, zone: Optional[str] = None) -> pd.Timestamp:
    """Round `ts` down to the start of `unit`, with calendar boundaries taken in `zone`."""
    t = ts.tz_convert(resolve_zone(zone))

    if unit == "milliseconds":
        return t.floor("ms")
    if unit == "seconds":
        return t.floor("s")
    if unit == "minutes":
        return t.floor("min")
    if unit == "hours":
        return t.replace(minute=0, second=0, microsecond=0, nanosecond=0)
    if unit == "days":
        return _local_midnight(t)
    if unit == "weeks":
        # ISO weeks, starting on Monday
        return _local_midnight(t, days_back=t.weekday())
    if unit == "months":
        return _local_midnight(t, day=1)
    if unit == "years":
        return _local_midnight(t, month=1, day=1)

    raise ValueError(f"Unknown datetime unit '{unit}'")


def add_unit(ts: pd.Timestamp, unit: str) -> pd.Timestamp:
    """Step one `unit` forward; calendar units keep the wall-clock time."""
    if unit in _CALENDAR_OFFSETS:
        if ts.tz is None:
            return ts + _CALENDAR_OFFSETS[unit]
        naive = ts.tz_localize(None) + _CALENDAR_OFFSETS[unit]
        return naive.tz_localize(ts.tz, ambiguous=True, nonexistent="shift_forward")
    if unit in _APPROX_UNIT_LENGTH:
        return ts + _APPROX_UNIT_LENGTH[unit]
    raise ValueError(f"Unknown datetime unit '{unit}'")


def datetime_resolution(start: pd.Timestamp, end: pd.Timestamp) -> str:
    """
    Pick the finest unit that covers [start, end] in at most
    AUTO_RESOLUTION_TARGET steps.
    """
    span = abs(end - start)
    for unit in DATETIME_UNITS:
        if span / _APPROX_UNIT_LENGTH[unit] <= AUTO_RESOLUTION_TARGET:
            return unit
    return "years"


# -------------------------------------------------------------------------
# Duration units
# -------------------------------------------------------------------------
DURATION_RESOLUTIONS: Dict[str, pd.Timedelta] = {
    "milliseconds": pd.Timedelta(milliseconds=1),
    "seconds": pd.Timedelta(seconds=1),
    "minutes": pd.Timedelta(minutes=1),
    "hours": pd.Timedelta(hours=1),
    "days": pd.Timedelta(days=1),
    "weeks": pd.Timedelta(weeks=1),
    "years": pd.Timedelta(days=365.25),
}


def duration_resolution(start: pd.Timedelta, end: pd.Timedelta) -> str:
    span = abs(end - start)
    for unit, length in DURATION_RESOLUTIONS.items():
        if span / length <= AUTO_RESOLUTION_TARGET:
            return unit
    return "years"
