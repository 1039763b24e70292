"""
Slot generator – candidate start times for a field on a given date.

Each sport profile has a duration policy and an operating-hours policy:

  • tennis / padel – hourly slots, bookable for 1 to 3 hours in
    half-hour steps.  The booking page offers 09:00–23:00; the shorter
    09:00–21:00 list is kept for staff screens.
  • football – fixed 90-minute sessions on a 30-minute grid up to a last
    start of 23:30.  Opening time depends on the pitch format:
      - 6-a-side: weekday opening, but 10:00 on Saturdays
      - 7/8-a-side: 10:00 every day
      - unclassified: weekday opening every day

Unknown sport profiles fail closed with an empty slot list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from fieldbook.config import FOOTBALL_WEEKDAY_OPENING
from fieldbook.core.timeofday import (
    MINUTES_PER_DAY,
    from_minutes,
    hours_to_minutes,
    to_minutes,
)
from fieldbook.errors import InvalidDuration
from fieldbook.models import FootballFormat, Sport, Terrain

SATURDAY = 5

SLOT_GRID_MINUTES = 30
FOOTBALL_SESSION_HOURS = 1.5
FOOTBALL_SESSION_MINUTES = hours_to_minutes(FOOTBALL_SESSION_HOURS)
FOOTBALL_LAST_START = "23:30"
FOOTBALL_WEEKEND_OPENING = "10:00"

RACKET_SPORTS = frozenset({Sport.TENNIS.value, Sport.PADEL.value})
RACKET_DURATIONS: tuple[float, ...] = (1.0, 1.5, 2.0, 2.5, 3.0)
RACKET_DEFAULT_DURATION = 1.0
RACKET_OPENING = "09:00"
RACKET_LAST_START_STANDARD = "21:00"
RACKET_LAST_START_EXTENDED = "23:00"

_SIX_A_SIDE = re.compile(r"(?<!\d)6(?!\d)|\bsix\b", re.IGNORECASE)
_SEVEN_OR_EIGHT = re.compile(r"(?<!\d)[78](?!\d)|\b(seven|sept|eight|huit)\b", re.IGNORECASE)


@dataclass(frozen=True)
class OperatingWindow:
    """Minutes since midnight; `closes` may run past midnight (> 1440)."""

    opens: int
    last_start: int
    closes: int
    step: int

    def starts(self) -> list[int]:
        return list(range(self.opens, self.last_start + 1, self.step))


def infer_football_format(name: str) -> FootballFormat:
    """
    Guess the player-count variant from a pitch's display name.

    Only used once, when a football field is created without an explicit
    format; the result is stored on the field.
    """
    if _SIX_A_SIDE.search(name):
        return FootballFormat.SIX_A_SIDE
    if _SEVEN_OR_EIGHT.search(name):
        return FootballFormat.SEVEN_OR_EIGHT_A_SIDE
    return FootballFormat.STANDARD


def football_format(field: Terrain) -> FootballFormat:
    return field.football_format or FootballFormat.STANDARD


def is_football(field: Terrain) -> bool:
    return field.sport == Sport.FOOTBALL.value


def effective_duration(field: Terrain, requested: float | None) -> float:
    """
    The duration a booking actually occupies.

    Football is always one 1.5 h session.  Racket sports accept the
    offered durations only and default to one hour.
    """
    if is_football(field):
        return FOOTBALL_SESSION_HOURS
    if requested is None:
        return RACKET_DEFAULT_DURATION
    if field.sport in RACKET_SPORTS and requested not in RACKET_DURATIONS:
        offered = ", ".join(f"{d:g}" for d in RACKET_DURATIONS)
        raise InvalidDuration(
            f"Duration {requested:g}h is not offered for {field.sport}; choose one of {offered}",
            details={"duration": requested},
        )
    if requested <= 0:
        raise InvalidDuration("Duration must be positive", details={"duration": requested})
    return requested


def operating_window(
    field: Terrain,
    on: date,
    *,
    weekday_opening: str = FOOTBALL_WEEKDAY_OPENING,
    extended: bool = True,
) -> OperatingWindow | None:
    if is_football(field):
        fmt = football_format(field)
        if fmt is FootballFormat.SEVEN_OR_EIGHT_A_SIDE:
            opening = FOOTBALL_WEEKEND_OPENING
        elif fmt is FootballFormat.SIX_A_SIDE and on.weekday() == SATURDAY:
            opening = FOOTBALL_WEEKEND_OPENING
        else:
            opening = weekday_opening
        last_start = to_minutes(FOOTBALL_LAST_START)
        return OperatingWindow(
            opens=to_minutes(opening),
            last_start=last_start,
            closes=last_start + FOOTBALL_SESSION_MINUTES,
            step=SLOT_GRID_MINUTES,
        )

    if field.sport in RACKET_SPORTS:
        last = RACKET_LAST_START_EXTENDED if extended else RACKET_LAST_START_STANDARD
        return OperatingWindow(
            opens=to_minutes(RACKET_OPENING),
            last_start=to_minutes(last),
            closes=MINUTES_PER_DAY,
            step=60,
        )

    return None


def generate_slots(
    field: Terrain,
    on: date,
    *,
    duration: float | None = None,
    weekday_opening: str = FOOTBALL_WEEKDAY_OPENING,
    extended: bool = True,
) -> list[str]:
    """
    Ordered candidate start times ("HH:MM") for *field* on *on*.

    When *duration* is given, starts whose session would run past the
    closing time are dropped.
    """
    window = operating_window(
        field, on, weekday_opening=weekday_opening, extended=extended
    )
    if window is None:
        return []

    length = hours_to_minutes(effective_duration(field, duration))
    return [
        from_minutes(start)
        for start in window.starts()
        if start + length <= window.closes
    ]


def is_legal_start(
    field: Terrain,
    on: date,
    start: str,
    *,
    duration: float | None = None,
    weekday_opening: str = FOOTBALL_WEEKDAY_OPENING,
) -> bool:
    return start in generate_slots(
        field, on, duration=duration, weekday_opening=weekday_opening
    )
