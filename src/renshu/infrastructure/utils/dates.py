"""Datetime helpers shared by the infrastructure adapters."""

from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive values come from stores that drop the offset; they are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
