"""
UTC timestamp helpers.

All pipeline timestamps are ISO-8601 strings in UTC with millisecond precision
and a trailing "Z" (e.g. 2024-02-04T10:30:00.123Z), so they sort lexically.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format a datetime as a UTC ISO-8601 string with millisecond precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return to_iso(utc_now())


def date_part(timestamp: Optional[str]) -> Optional[str]:
    """Calendar date (YYYY-MM-DD) of an ISO timestamp, or None."""
    if not timestamp:
        return None
    return timestamp.split("T")[0]
