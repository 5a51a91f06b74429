"""Interval arithmetic and local wall-clock timestamp handling."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

import pandas as pd

LOCAL_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"
MIN_DURATION_HOURS = 0.25

TimeLike = Union[str, datetime, pd.Timestamp, None]


def parse_local(value: TimeLike, tz: Optional[str] = None) -> Optional[datetime]:
    """
    Parse a timestamp into a naive local wall-clock datetime.

    Naive input is taken as already local. Input carrying a UTC marker or an
    offset is converted to ``tz`` (system local zone when ``tz`` is None) and
    the offset dropped.

    Args:
        value: ISO string, datetime or Timestamp (anything else is unparsable)
        tz: IANA zone name used for offset-carrying input

    Returns:
        Naive datetime, or None when the value is empty or unparsable
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        ts = pd.to_datetime(value, errors="coerce")
    elif isinstance(value, (datetime, date)):
        try:
            ts = pd.Timestamp(value)
        except (TypeError, ValueError):
            return None
    else:
        return None
    if ts is pd.NaT or pd.isna(ts):
        return None

    if ts.tzinfo is not None:
        if tz:
            ts = ts.tz_convert(tz)
        else:
            ts = pd.Timestamp(ts.to_pydatetime().astimezone())
        ts = ts.tz_localize(None)
    return ts.to_pydatetime().replace(microsecond=0)


def to_local_iso(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.strftime(LOCAL_ISO_FORMAT)


def normalize_timestamp(value: TimeLike, tz: Optional[str] = None) -> Optional[str]:
    """Re-serialize any parsable timestamp as local ISO; unparsable -> None."""
    dt = parse_local(value, tz)
    return to_local_iso(dt) if dt is not None else None


def add_hours(dt: datetime, hours: float) -> datetime:
    return dt + timedelta(hours=hours)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def duration_hours(start: TimeLike, end: TimeLike, fallback: float = 2.0) -> float:
    """
    Duration of ``start``..``end`` in hours, never below 0.25.

    Missing or malformed timestamps yield ``fallback`` instead of raising.
    """
    s = start if isinstance(start, datetime) else parse_local(start)
    e = end if isinstance(end, datetime) else parse_local(end)
    if s is None or e is None:
        return fallback
    return max(MIN_DURATION_HOURS, hours_between(s, e))


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def overlap_hours(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> float:
    """Length of the intersection of two intervals in hours (0 when disjoint)."""
    lo = max(a_start, b_start)
    hi = min(a_end, b_end)
    return max(0.0, hours_between(lo, hi))


def at_hour(day: date | datetime, hour: float) -> datetime:
    """Local datetime ``hour`` hours after midnight of ``day`` (fractional hours allowed)."""
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time()) + timedelta(hours=hour)


def same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def business_window(day_anchor: date | datetime, open_hour: float, close_hour: float) -> Tuple[datetime, datetime]:
    """Opening and closing instants of the business window on ``day_anchor``'s calendar day."""
    return at_hour(day_anchor, open_hour), at_hour(day_anchor, close_hour)


def clamp_to_business_window(
    start: datetime,
    end: datetime,
    open_hour: float,
    close_hour: float,
) -> Tuple[datetime, datetime]:
    """
    Clamp a same-day job into the business window of its start day.

    The start never moves earlier than the window opens, the duration never
    exceeds the window length, and the job never runs past the window close
    (a late job is pulled back so that it ends exactly at close).

    Args:
        start: Job start (local)
        end: Job end (local)
        open_hour: Window opening hour
        close_hour: Window closing hour

    Returns:
        (start, end) inside the window
    """
    win_open, win_close = business_window(start, open_hour, close_hour)
    window_hours = hours_between(win_open, win_close)
    dur = min(max(0.0, hours_between(start, end)), window_hours)

    new_start = max(start, win_open)
    new_end = add_hours(new_start, dur)
    if new_end > win_close:
        new_end = win_close
        new_start = add_hours(win_close, -dur)
    return new_start, new_end


def snap_year(dt: Optional[datetime], anchor_year: int) -> Optional[datetime]:
    """Coerce a datetime's year to the dataset anchor year."""
    if dt is None or dt.year == anchor_year:
        return dt
    try:
        return dt.replace(year=anchor_year)
    except ValueError:
        # Feb 29 in a non-leap anchor year
        return dt.replace(year=anchor_year, day=28)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def round_hours(x: float, digits: int = 1) -> float:
    """Half-up rounding to ``digits`` decimals (2.25 -> 2.3)."""
    scale = 10 ** digits
    return math.floor(x * scale + 0.5) / scale
