"""Time helpers shared by order lifecycle code."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Return an aware UTC datetime.

    SQLite drops tzinfo on the way back out, so naive values read from the
    store are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_window_utc(day: datetime | None = None) -> tuple[datetime, datetime]:
    """Return the UTC day boundaries around ``day`` (defaults to now)."""
    now = as_utc(day) or utcnow()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start, end
