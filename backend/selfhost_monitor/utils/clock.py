"""Time helpers.

All timestamps are stored as naive UTC datetimes.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_ms(start: datetime | None, end: datetime) -> float:
    """Milliseconds from start to end; infinite when start is unset."""
    if start is None:
        return float("inf")
    return (end - start).total_seconds() * 1000
