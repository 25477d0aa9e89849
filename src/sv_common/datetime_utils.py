"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def minutes_from_now(minutes: int, now: datetime | None = None) -> datetime:
    return (now or utc_now()) + timedelta(minutes=minutes)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. from a cached JSON payload) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
