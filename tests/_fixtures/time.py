"""Time helpers for deterministic tests."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_dt(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    microsecond: int = 0,
) -> datetime:
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=UTC)


def utc_ms(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    millisecond: int = 0,
) -> int:
    """Milliseconds since the epoch for a UTC wall-clock time."""
    dt = utc_dt(year, month, day, hour, minute, second, millisecond * 1000)
    return int(dt.timestamp() * 1000)
