# src/typerank/db/time.py
"""Time utilities for ranking periods.

All boundaries are computed in UTC and returned as unix seconds, the unit the
ledger uses for event timestamps.
"""

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


def start_of_utc_day(now: datetime) -> int:
    """Unix seconds of 00:00 UTC on the day containing ``now``."""
    day = _as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(day.timestamp())


def start_of_iso_week(now: datetime) -> int:
    """Unix seconds of Monday 00:00 UTC of the ISO week containing ``now``."""
    current = _as_utc(now)
    monday = current - timedelta(days=current.weekday())
    return start_of_utc_day(monday)


def unix_seconds(now: datetime) -> int:
    """Whole unix seconds for ``now``."""
    return int(_as_utc(now).timestamp())
