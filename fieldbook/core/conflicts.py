"""
Conflict resolver – is a candidate (field, date, start, duration) free?

Checks run in a fixed order and stop at the first hit:

  1. overlap with a live one-off or generated reservation
  2. overlap with an active subscription occurrence
  3. football only: alignment with the dominant session phase

Intervals are half-open, so back-to-back bookings never collide.
The result is computed from the data passed in and must be recomputed
after every write.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from fieldbook.core import fragmentation
from fieldbook.core.lifecycle import is_live
from fieldbook.core.slots import FOOTBALL_SESSION_MINUTES, is_football
from fieldbook.core.subscriptions import occurs_on
from fieldbook.core.timeofday import (
    MINUTES_PER_DAY,
    from_minutes,
    hours_to_minutes,
    to_minutes,
)
from fieldbook.models import Reservation, Subscription, Terrain


class BlockKind(str, Enum):
    RESERVATION = "reservation"
    SUBSCRIPTION = "subscription"
    ALIGNMENT = "alignment"


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: str | None = None
    kind: BlockKind | None = None
    blocking_id: int | None = None

    @classmethod
    def free(cls) -> Availability:
        return cls(available=True)

    @classmethod
    def blocked(
        cls, reason: str, kind: BlockKind, blocking_id: int | None = None
    ) -> Availability:
        return cls(available=False, reason=reason, kind=kind, blocking_id=blocking_id)


def interval(start: str, duration: float) -> tuple[int, int]:
    begin = to_minutes(start)
    return begin, begin + hours_to_minutes(duration)


def overlaps(a: tuple[int, int], b: tuple[int, int]) -> bool:
    return a[0] < b[1] and a[1] > b[0]


def _span(bounds: tuple[int, int]) -> str:
    return f"{from_minutes(bounds[0])}–{from_minutes(bounds[1])}"


def check_availability(
    field: Terrain,
    on: date,
    start: str,
    duration: float,
    reservations: Iterable[Reservation],
    subscriptions: Iterable[Subscription],
    *,
    exclude_reservation_id: int | None = None,
    exclude_subscription_id: int | None = None,
) -> Availability:
    """
    Decide whether *start* for *duration* hours is free on *field*/*on*.

    *reservations* and *subscriptions* may contain rows for other fields
    or dates; they are filtered here.  *subscriptions* must include every
    subscription referenced by the reservations, otherwise those
    reservations are treated as void.
    """
    candidate = interval(start, duration)
    subs = list(subscriptions)
    subs_by_id = {s.id: s for s in subs}

    live = [
        r
        for r in reservations
        if r.field_id == field.id
        and r.date == on
        and r.id != exclude_reservation_id
        and (exclude_subscription_id is None or r.subscription_id != exclude_subscription_id)
        and is_live(r, subs_by_id)
    ]
    for res in live:
        other = interval(res.start_time, res.duration)
        if overlaps(candidate, other):
            return Availability.blocked(
                f"Overlaps reservation #{res.id} ({_span(other)})",
                BlockKind.RESERVATION,
                res.id,
            )

    occurrences = [
        s
        for s in subs
        if s.field_id == field.id and s.id != exclude_subscription_id and occurs_on(s, on)
    ]
    for sub in occurrences:
        other = interval(sub.start_time, sub.duration)
        if overlaps(candidate, other):
            return Availability.blocked(
                f"Overlaps subscription #{sub.id} "
                f"(every {calendar.day_name[sub.weekday]} {_span(other)})",
                BlockKind.SUBSCRIPTION,
                sub.id,
            )

    if is_football(field):
        materialized = {r.subscription_id for r in live if r.subscription_id is not None}
        starts = [r.start_time for r in live] + [
            s.start_time for s in occurrences if s.id not in materialized
        ]
        phase = fragmentation.dominant_phase(starts, FOOTBALL_SESSION_MINUTES)
        if phase is not None and fragmentation.phase_of(start, FOOTBALL_SESSION_MINUTES) != phase:
            reason = f"Start {start} would leave a gap no session can fill"
            aligned = fragmentation.next_aligned_start(start, phase, FOOTBALL_SESSION_MINUTES)
            if aligned < MINUTES_PER_DAY:
                reason += f"; the next aligned start is {from_minutes(aligned)}"
            return Availability.blocked(reason, BlockKind.ALIGNMENT)

    return Availability.free()
