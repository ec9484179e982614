"""
Datetime utilities for consistent timezone handling across the application.

All timestamps are stored and compared in UTC. Some database backends (SQLite)
return naive datetimes, so values read back are normalized with ensure_utc.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get the current timezone-aware UTC datetime.

    Returns:
        Current datetime with UTC tzinfo
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware UTC datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive values are written as UTC, so just attach the zone
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(dt: datetime, now: Optional[datetime] = None) -> bool:
    """Check whether a datetime is at or before now."""
    normalized = ensure_utc(dt)
    if normalized is None:
        raise ValueError("is_past requires a datetime")
    return normalized <= (now or utc_now())
