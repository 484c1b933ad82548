"""Time utility helpers for consistent timezone handling."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current time in UTC as an aware datetime."""

    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return today's calendar date in UTC."""

    return utc_now().date()


def ensure_utc(dt: datetime) -> datetime:
    """Coerce a datetime into UTC, assuming naive values are already UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def date_key(day: date) -> str:
    """Format a calendar day the way task records store it (``YYYY-MM-DD``)."""

    return day.isoformat()


def today_key() -> str:
    return date_key(utc_today())


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date or datetime string into a date (None-safe)."""

    if not value:
        return None
    normalised = value.strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(normalised).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(normalised[:10])
    except ValueError:
        return None
