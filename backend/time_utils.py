"""
Time utilities for the Taskboard API.

This module provides a single source of truth for time operations,
so that date validation and stored timestamps agree on what "now" is.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time.
    Single source of truth for "now" throughout the application.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive datetimes are interpreted as UTC, which is how they are stored.

    Args:
        value: datetime to normalize, or None

    Returns:
        timezone-aware UTC datetime, or None when value is None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_in_future(value: datetime) -> bool:
    """Return True if value lies strictly after the current UTC time."""
    return as_utc(value) > utc_now()
