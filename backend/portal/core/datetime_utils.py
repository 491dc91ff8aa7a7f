"""
Datetime utility functions for handling timezone-aware datetimes.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current datetime in UTC timezone.

    Using this function instead of datetime.now(timezone.utc) directly
    enables easier testing through mocking.

    Returns:
        A timezone-aware datetime object representing the current time in UTC.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime object is timezone-aware (UTC).
    SQLite returns timezone-naive datetimes even when stored as timezone-aware.

    Args:
        dt: The datetime to normalize, or None

    Returns:
        A timezone-aware datetime in UTC, or None when dt is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
