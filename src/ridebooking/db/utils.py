"""Database utility functions."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    SQLite keeps datetimes as TEXT without an offset, so every timestamp the
    platform produces is naive UTC to keep comparisons consistent.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize an aware datetime to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
