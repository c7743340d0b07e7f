"""
Datetime helpers for attempt timestamps.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
columns, so anything read from the store goes through
``ensure_timezone_aware`` before arithmetic.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current datetime in UTC timezone.

    All attempt timestamps (start, end, answered, graded) come from here so
    tests can patch a single function.

    Returns:
        A timezone-aware datetime object representing the current time in UTC.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Ensure a datetime object is timezone-aware (UTC).

    Args:
        dt: The datetime to ensure is timezone-aware

    Returns:
        A timezone-aware datetime object in UTC

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def elapsed_seconds(start: datetime, end: Optional[datetime]) -> Optional[int]:
    """Whole seconds between two timestamps, or None while ``end`` is unset."""
    if end is None:
        return None
    delta = ensure_timezone_aware(end) - ensure_timezone_aware(start)
    return max(int(delta.total_seconds()), 0)
