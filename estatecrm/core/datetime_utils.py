"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application.

    Returns:
        Current datetime in UTC timezone.
    """
    return datetime.now(timezone.utc)


def to_iso_timestamp(value: datetime) -> str:
    """Render a datetime as an ISO-8601 UTC string with millisecond precision.

    The format matches what the CRMs themselves return, e.g.
    ``2024-05-01T09:30:00.000Z``.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
