"""Timestamp helpers.

All stored datetimes are naive UTC. ISO strings coming from devices may carry
a "Z" suffix or an explicit offset; both are normalised here.
"""

from __future__ import annotations

from datetime import datetime, timezone

MS_PER_HOUR = 60 * 60 * 1000


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso(value: str | datetime) -> datetime:
    """Parse an ISO-8601 string into a naive UTC datetime.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if isinstance(value, datetime):
        return as_naive_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_naive_utc(datetime.fromisoformat(text))


def to_iso(value: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T08:30:00.000Z."""
    return as_naive_utc(value).isoformat(timespec="milliseconds") + "Z"


def millis_between(start: datetime, end: datetime) -> int:
    return int((as_naive_utc(end) - as_naive_utc(start)).total_seconds() * 1000)


def ms_to_hours(ms: float) -> float:
    """Milliseconds to hours, rounded to 2 decimals."""
    return round(ms / MS_PER_HOUR, 2)
