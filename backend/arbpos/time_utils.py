from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta


# Token/plan durations as calendar offsets. Month arithmetic clamps to the
# last day of the target month (Jan 31 + 1 month -> Feb 28/29).
DURATIONS = {
    "1m": relativedelta(months=1),
    "6m": relativedelta(months=6),
    "1y": relativedelta(years=1),
}


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_duration(start: datetime, duration: str) -> datetime:
    """
    Calendar-aware addition of a plan duration ("1m", "6m", "1y").

    Raises KeyError for unknown durations; callers validate first.
    """
    return start + DURATIONS[duration]


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _store_tz(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def format_local(dt: Optional[datetime], tz_name: str = "UTC") -> Optional[str]:
    """
    Receipt-style timestamp "YYYY-MM-DD HH:MM:SS" in the store timezone.
    Naive datetimes are treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(_store_tz(tz_name)).strftime("%Y-%m-%d %H:%M:%S")
