"""Datetime helpers.

All timestamps handled by Podpipe are timezone-aware UTC.
"""

from datetime import datetime, timezone
from email.utils import format_datetime


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_rfc2822(value: datetime) -> str:
    """Format a datetime the way RSS pubDate expects.

    Example:
        >>> to_rfc2822(datetime(2024, 1, 1, tzinfo=timezone.utc))
        'Mon, 01 Jan 2024 00:00:00 +0000'
    """
    return format_datetime(ensure_utc(value))
