"""Timezone-aware datetime utilities.

Stored timestamps are naive UTC so that PostgreSQL and SQLite compare
them the same way.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def utc_now_naive() -> datetime:
    """Return current UTC time as naive datetime (for DB compatibility).

    Returns:
        Naive datetime representing current UTC time
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Convert a datetime to naive UTC datetime.

    Args:
        dt: Datetime to convert (can be aware or naive)

    Returns:
        Naive datetime in UTC, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def from_client_timestamp(value: int | float | str | datetime | None) -> datetime:
    """Convert a client-supplied event time to naive UTC.

    Browsers send ``Date.now()`` (epoch milliseconds) or an ISO-8601
    string. Missing or unparsable values fall back to the server clock.
    """
    if value is None:
        return utc_now_naive()
    if isinstance(value, datetime):
        return to_utc_naive(value) or utc_now_naive()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, UTC).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return utc_now_naive()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return utc_now_naive()
    return to_utc_naive(parsed) or utc_now_naive()


def isoformat_z(dt: datetime) -> str:
    """Render a naive-UTC or aware datetime as ISO-8601 with a ``Z`` suffix."""
    naive = to_utc_naive(dt) or dt
    return naive.isoformat(timespec="milliseconds") + "Z"
