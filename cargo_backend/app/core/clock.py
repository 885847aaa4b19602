"""
Timestamp helpers.

Timestamps are stored as naive UTC, matching datetime.utcnow().
"""

from datetime import datetime, timezone


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
