"""Shared utility functions for service layer."""
from datetime import UTC, datetime, timedelta

from models.base import utc_now

# Escape character passed explicitly to ILIKE; SQLite has no default escape character
ILIKE_ESCAPE = "\\"


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def next_timestamp(previous: datetime) -> datetime:
    """
    Current time, nudged forward if needed so it is strictly after previous.

    Guarantees updated_at moves on every mutation even when two writes land on the
    same clock tick.
    """
    now = utc_now()
    previous = as_utc(previous)
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)
