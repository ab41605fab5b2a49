"""Datetime utilities for common operations."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite hands timestamps back without tzinfo; everything we store is UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a stored UTC datetime into the given IANA timezone."""
    return ensure_utc(dt).astimezone(ZoneInfo(tz_name))


def format_time_of_day(dt: datetime, tz_name: str = "UTC") -> str:
    """
    Format the clock time of a datetime, e.g. ``02:30 PM``.

    Args:
        dt: Datetime to format
        tz_name: Display timezone

    Returns:
        12-hour clock string with two-digit hour and minute
    """
    return to_local(dt, tz_name).strftime("%I:%M %p")


def format_display_date(dt: datetime, tz_name: str = "UTC") -> str:
    """Format a date for notification text, e.g. ``Mon Oct 19 2026``."""
    return to_local(dt, tz_name).strftime("%a %b %d %Y")
