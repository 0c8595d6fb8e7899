"""
Canonical values.

Raw record values are converted to one of these representations before they
are compared, binned or filtered:

- Number:   ``float``
- Text:     ``str``
- DateTime: timezone-aware ``pandas.Timestamp``
- Duration: ``pandas.Timedelta``
- Missing:  the ``MISSING`` singleton

Every parser here is total: bad input gives ``MISSING``, never an exception.
"""
from __future__ import annotations

import datetime as dt
import logging
import math
import numbers
import re
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd

from .misval import MISSING

logger = logging.getLogger(__name__)

ISO8601 = "ISO8601"
UNIX_SECONDS = "Unix seconds"
UNIX_MILLISECONDS = "Unix milliseconds"

DEFAULT_ZONE = "UTC"

# length of one duration unit; months and years use the mean Gregorian lengths
DURATION_UNITS = {
    "milliseconds": pd.Timedelta(milliseconds=1),
    "seconds": pd.Timedelta(seconds=1),
    "minutes": pd.Timedelta(minutes=1),
    "hours": pd.Timedelta(hours=1),
    "days": pd.Timedelta(days=1),
    "weeks": pd.Timedelta(weeks=1),
    "months": pd.Timedelta(days=30.436875),
    "years": pd.Timedelta(days=365.2425),
}

_NUM = r"(\d+(?:[.,]\d+)?)"
ISO_DURATION = re.compile(
    rf"^([+-])?P(?=\d|T\d)(?:{_NUM}Y)?(?:{_NUM}M)?(?:{_NUM}W)?(?:{_NUM}D)?"
    rf"(?:T(?=\d)(?:{_NUM}H)?(?:{_NUM}M)?(?:{_NUM}S)?)?$",
    re.IGNORECASE,
)
_ISO_DURATION_UNITS = ("years", "months", "weeks", "days", "hours", "minutes", "seconds")

# Exceptions pandas raises on unparsable dates, durations and unknown zones
_PARSE_ERRORS = (ValueError, TypeError, OverflowError, KeyError)


class ValueKind(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    DATETIME = "datetime"
    DURATION = "duration"
    MISSING = "missing"


def kind_of(value: Any) -> ValueKind:
    """Return the canonical tag of an already-canonical value."""
    if value is MISSING:
        return ValueKind.MISSING
    if isinstance(value, (pd.Timestamp, dt.datetime)):
        return ValueKind.DATETIME
    if isinstance(value, (pd.Timedelta, dt.timedelta)):
        return ValueKind.DURATION
    if isinstance(value, bool):
        return ValueKind.TEXT
    if isinstance(value, numbers.Real):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    raise TypeError(f"Not a canonical value: {value!r}")


def same_kind(a: Any, b: Any) -> bool:
    try:
        return kind_of(a) == kind_of(b)
    except TypeError:
        return False


# -------------------------------------------------------------------------
# Numbers
# -------------------------------------------------------------------------
def to_number(raw: Any) -> Any:
    """Parse a raw value as a finite float, or MISSING."""
    if raw is None or raw is MISSING or isinstance(raw, bool):
        return MISSING

    if isinstance(raw, numbers.Real):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return MISSING
    else:
        return MISSING

    if not math.isfinite(value):
        return MISSING
    return value


# -------------------------------------------------------------------------
# Datetimes
# -------------------------------------------------------------------------
def resolve_zone(zone: Optional[str]) -> str:
    """'ISO8601' (or nothing) means: use the information in the data, else UTC."""
    if not zone or zone == ISO8601:
        return DEFAULT_ZONE
    return zone


def to_datetime(raw: Any, zone: Optional[str] = ISO8601, fmt: Optional[str] = ISO8601) -> Any:
    """
    Parse a raw value to a timezone-aware Timestamp.

    :param zone: timezone used when the input carries no offset
    :param fmt: ISO8601, 'Unix seconds', 'Unix milliseconds', or a strftime pattern
    """
    if raw is None or raw is MISSING or isinstance(raw, bool):
        return MISSING

    fmt = fmt or ISO8601
    try:
        if fmt in (UNIX_SECONDS, UNIX_MILLISECONDS):
            number = to_number(raw)
            if number is MISSING:
                return MISSING
            unit = "s" if fmt == UNIX_SECONDS else "ms"
            ts = pd.to_datetime(number, unit=unit, utc=True)
        elif isinstance(raw, (pd.Timestamp, dt.datetime, np.datetime64)):
            ts = pd.Timestamp(raw)
        elif isinstance(raw, str):
            if fmt == ISO8601:
                ts = pd.to_datetime(raw.strip(), errors="coerce")
            else:
                ts = pd.to_datetime(raw.strip(), format=fmt, errors="coerce")
        else:
            return MISSING

        if ts is pd.NaT or pd.isna(ts):
            return MISSING

        if ts.tzinfo is None:
            ts = ts.tz_localize(resolve_zone(zone))
        return ts
    except _PARSE_ERRORS:
        return MISSING


# -------------------------------------------------------------------------
# Durations
# -------------------------------------------------------------------------
def _parse_iso_duration(text: str) -> Any:
    """ISO-8601 duration; years and months count at their mean lengths."""
    match = ISO_DURATION.match(text)
    if match is None:
        return MISSING

    sign, *amounts = match.groups()
    td = pd.Timedelta(0)
    for amount, unit in zip(amounts, _ISO_DURATION_UNITS):
        if amount is not None:
            td += float(amount.replace(",", ".")) * DURATION_UNITS[unit]
    return -td if sign == "-" else td


def to_duration(raw: Any, units: Optional[str] = "seconds") -> Any:
    """
    Parse a raw value to a Timedelta.

    Strings may be ISO-8601 durations ('P1DT2H', 'P1Y2M') or pandas style
    ('1 days 02:00:00'). Plain numbers are interpreted in `units`.
    """
    if raw is None or raw is MISSING or isinstance(raw, bool):
        return MISSING

    try:
        if isinstance(raw, (pd.Timedelta, dt.timedelta, np.timedelta64)):
            td = pd.Timedelta(raw)
        elif isinstance(raw, numbers.Real):
            number = to_number(raw)
            if number is MISSING:
                return MISSING
            unit_length = DURATION_UNITS.get(units or "seconds")
            if unit_length is None:
                logger.error("Unknown duration units", extra={"units": units})
                return MISSING
            td = number * unit_length
        elif isinstance(raw, str):
            text = raw.strip()
            if not text:
                return MISSING
            # pandas reads 'P1M' as one minute
            if text.lstrip("+-")[:1] in ("P", "p"):
                return _parse_iso_duration(text)
            td = pd.Timedelta(text)
        else:
            return MISSING
    except _PARSE_ERRORS:
        return MISSING

    if td is pd.NaT or pd.isna(td):
        return MISSING
    return td


def duration_as(value: pd.Timedelta, units: str) -> float:
    """
    Express a Timedelta as a float number of `units`.

    :raises KeyError: for unknown units
    """
    return value / DURATION_UNITS[units]


# -------------------------------------------------------------------------
# Wire helpers
# -------------------------------------------------------------------------
def to_jsonable(value: Any) -> Any:
    """Convert canonical values (and containers of them) to JSON-safe values."""
    if value is MISSING:
        return "missing"
    if isinstance(value, (pd.Timestamp, pd.Timedelta)):
        return value.isoformat()
    if isinstance(value, (dt.datetime, dt.timedelta)):
        return to_jsonable(pd.Timestamp(value) if isinstance(value, dt.datetime) else pd.Timedelta(value))
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


def parse_bound(value: Any, value_type: str) -> Any:
    """
    Parse a minval/maxval or selection endpoint coming from the wire
    into the canonical value for a facet/partition type. Unparsable gives None.
    """
    if value is None:
        return None

    if value_type == "continuous":
        parsed = to_number(value)
    elif value_type == "datetime":
        parsed = to_datetime(value)
    elif value_type == "duration":
        parsed = to_duration(value)
    else:
        return value

    return None if parsed is MISSING else parsed
