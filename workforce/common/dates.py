"""Date/time helpers shared by the services."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (drivers that drop tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours between two datetimes, rounded to 2 places."""
    delta = ensure_utc(end) - ensure_utc(start)
    return round(delta.total_seconds() / 3600, 2)
