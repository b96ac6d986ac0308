"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the system should be timezone-aware UTC.
Use these helpers instead of datetime.now() or datetime.utcnow().
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Use at repository/persistence boundaries to normalize datetimes.

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def from_timestamp_ms_utc(timestamp_ms: int) -> datetime:
    """
    Create a UTC-aware datetime from a millisecond Unix timestamp.
    Legacy approval records written by the browser client store
    Date.now() values in milliseconds.

    Args:
        timestamp_ms: Unix timestamp in milliseconds

    Returns:
        UTC-aware datetime
    """
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)


def parse_timestamp(value: object) -> datetime | None:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes (Firestore timestampValue), ISO-8601 strings and
    millisecond epoch integers. Anything else returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return from_timestamp_ms_utc(int(value))
    if isinstance(value, str) and value:
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None
