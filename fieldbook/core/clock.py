"""
Explicit sources of "now" and pricing configuration.

Core functions take these as parameters instead of reading ambient
state, so every decision can be replayed with a pinned clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Protocol

from fieldbook.config import LOCAL_TZ, NIGHT_START_DEFAULT


class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware current time in the venue's local zone."""
        ...


class SystemClock:
    def __init__(self, tz: tzinfo = LOCAL_TZ) -> None:
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=LOCAL_TZ)
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self._now = now if now.tzinfo else now.replace(tzinfo=LOCAL_TZ)


def today(clock: Clock) -> date:
    return clock.now().date()


@dataclass(frozen=True)
class PricingConfig:
    """Global pricing settings (currently only the night-rate cutoff)."""

    night_start: str = NIGHT_START_DEFAULT
