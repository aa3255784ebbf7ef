"""
Shared datetime helpers.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, int, float, None]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp or epoch seconds and normalize it to UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch_seconds(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC with a trailing Z."""
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def from_epoch_seconds(seconds: Union[int, float]) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def to_epoch_seconds(dt: datetime) -> int:
    return int(ensure_utc(dt).timestamp())


def utc_date(dt: datetime) -> date:
    """Calendar date of a datetime in UTC."""
    return ensure_utc(dt).date()
