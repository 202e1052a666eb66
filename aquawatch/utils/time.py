"""Utility functions for time handling.

All timestamps should be UTC and timezone-aware. Persist UTC timestamps as
ISO-8601 strings with timezone offsets (e.g., "+00:00").
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def coerce_datetime(value: Any) -> datetime | None:
    """
    Coerce value to datetime, returning None on failure.

    Args:
        value: String, date or datetime to coerce

    Returns:
        Datetime in timezone.utc or None if invalid
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw.replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    return ensure_utc(parsed)


def coerce_date(value: Any) -> date | None:
    """Coerce value to a calendar date, returning None on failure."""
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    parsed = coerce_datetime(value)
    return parsed.date() if parsed else None


def elapsed_days(start: date | datetime, end: date | datetime) -> int:
    """Whole days between two instants, rounded up."""
    start_dt = coerce_datetime(start)
    end_dt = coerce_datetime(end)
    seconds = (end_dt - start_dt).total_seconds()
    return math.ceil(seconds / 86400)


def minutes_window(target: datetime, tolerance_minutes: float) -> tuple[datetime, datetime]:
    """Symmetric ``[target - tol, target + tol]`` window."""
    delta = timedelta(minutes=tolerance_minutes)
    return target - delta, target + delta


def sqlite_timestamp(dt: datetime) -> str:
    """Format a datetime for safe use with SQLite datetime() comparisons."""
    return ensure_utc(dt).strftime("%Y-%m-%d %H:%M:%S.%f")


def parse_sqlite_timestamp(value: str) -> datetime:
    """Inverse of :func:`sqlite_timestamp`; returns an aware UTC datetime."""
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S.%f")
    except ValueError:
        parsed = datetime.fromisoformat(value)
    return ensure_utc(parsed)
