# periodic/core/utils/clock.py
"""UTC helpers. Every instant the core handles is UTC-aware."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a UTC-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC.

    Naive values are interpreted as UTC wall-clock time (SQLite returns
    naive datetimes for ``DateTime(timezone=True)`` columns); aware values
    are converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_utc_optional(value: Optional[datetime]) -> Optional[datetime]:
    return None if value is None else ensure_utc(value)
