"""Helpers for "HH:MM" time-of-day strings and minute arithmetic."""

from __future__ import annotations

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: str) -> int:
    """Minutes since midnight for "HH:MM" (a trailing ":SS" is ignored)."""
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= minutes < 60) or hours < 0:
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def from_minutes(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM", wrapping past midnight."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def hours_to_minutes(hours: float) -> int:
    return round(hours * 60)


def end_time(start: str, duration_hours: float) -> str:
    return from_minutes(to_minutes(start) + hours_to_minutes(duration_hours))
