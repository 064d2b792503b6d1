"""
mentaro.clock

Time helpers shared by the persistence and domain layers.

Timestamps are persisted as naive UTC; anything arriving with a tzinfo is converted.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(tz=UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
