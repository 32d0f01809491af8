"""
Timestamp utilities for consistent time handling across the system.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[str, date, datetime, int, float]


def parse_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    """Convert a stored or user-supplied timestamp to a naive datetime.

    Accepts ISO 8601 strings (date-only or full, with a trailing 'Z'),
    date/datetime objects and Unix timestamps in seconds. Aware datetimes
    are converted to local time and made naive so they compare with
    ``datetime.now()``.

    Args:
        value: Value to convert (None passes through)

    Returns:
        datetime object, or None when value is empty

    Raises:
        ValueError: If a string cannot be parsed
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value)
    else:
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def to_iso_str(value: Optional[datetime]) -> Optional[str]:
    """Convert datetime to the ISO string stored in the backends.

    Args:
        value: datetime object (optional)

    Returns:
        ISO 8601 string or None
    """
    if value is None:
        return None
    return value.isoformat()


def days_since(value: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days elapsed between value and now.

    Args:
        value: Earlier timestamp
        now: Reference time (optional, uses current time if None)

    Returns:
        Elapsed days, negative when value lies in the future
    """
    if now is None:
        now = datetime.now()
    return (now - value) / timedelta(days=1)


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the datetime lying ``days`` days before now."""
    if now is None:
        now = datetime.now()
    return now - timedelta(days=days)
