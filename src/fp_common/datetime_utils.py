"""UTC datetime helpers.

Every timestamp stored or compared by the ledgers is timezone-aware UTC.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_days(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)
