"""
Reservation lifecycle: the status state machines, confirmation tokens,
timed expiry and the read-side visibility predicates.

    pending ──► confirmed ──► cancelled
       └──────────────────────►┘

Nothing leaves ``cancelled`` and nothing re-enters ``pending``.
Expiry is a pure predicate here; the storage layer applies it with a
conditional update so repeated sweeps are harmless.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from enum import Enum

from fieldbook.config import CONFIRMATION_WINDOW_MINUTES, LOCAL_TZ
from fieldbook.core.timeofday import hours_to_minutes, to_minutes
from fieldbook.errors import InvalidTransition
from fieldbook.models import (
    Reservation,
    ReservationStatus,
    Subscription,
    SubscriptionStatus,
)

CONFIRMATION_WINDOW = timedelta(minutes=CONFIRMATION_WINDOW_MINUTES)

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
}

LIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

# Nothing leaves cancelled; an expired subscription can only be cancelled.
SUBSCRIPTION_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.ACTIVE: frozenset(
        {SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED}
    ),
    SubscriptionStatus.EXPIRED: frozenset({SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.CANCELLED: frozenset(),
}


class ConfirmOutcome(str, Enum):
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


def new_token() -> str:
    return secrets.token_urlsafe(24)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=LOCAL_TZ)


# ── Transitions ───────────────────────────────────────────────────────────


def check_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    """
    Validate a staff status change.

    Returns False when *target* equals *current* (nothing to do), True
    when the transition should be applied, and raises InvalidTransition
    otherwise.
    """
    if target == current and current != ReservationStatus.CANCELLED:
        return False
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot change a {current.value} reservation to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return True


def check_subscription_transition(
    current: SubscriptionStatus, target: SubscriptionStatus
) -> bool:
    """Same contract as check_transition, for subscriptions."""
    if target == current:
        return False
    if target not in SUBSCRIPTION_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot change a {current.value} subscription to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return True


# ── Expiry & confirmation ─────────────────────────────────────────────────


def is_expired(
    reservation: Reservation,
    now: datetime,
    window: timedelta = CONFIRMATION_WINDOW,
) -> bool:
    """A pending reservation left unconfirmed for longer than *window*."""
    if reservation.status != ReservationStatus.PENDING:
        return False
    return _aware(now) - _aware(reservation.created_at) > window


def confirmation_outcome(
    reservation: Reservation | None,
    now: datetime,
    window: timedelta = CONFIRMATION_WINDOW,
) -> ConfirmOutcome:
    if reservation is None or reservation.status != ReservationStatus.PENDING:
        return ConfirmOutcome.NOT_FOUND
    if is_expired(reservation, now, window):
        return ConfirmOutcome.EXPIRED
    return ConfirmOutcome.CONFIRMED


def select_expired(
    reservations: Iterable[Reservation],
    now: datetime,
    window: timedelta = CONFIRMATION_WINDOW,
) -> list[Reservation]:
    return [r for r in reservations if is_expired(r, now, window)]


# ── Visibility ────────────────────────────────────────────────────────────


def is_void(reservation: Reservation, subscriptions: Mapping[int, Subscription]) -> bool:
    """Generated from a subscription that is missing or no longer active."""
    if reservation.subscription_id is None:
        return False
    sub = subscriptions.get(reservation.subscription_id)
    return sub is None or sub.status != SubscriptionStatus.ACTIVE


def is_live(reservation: Reservation, subscriptions: Mapping[int, Subscription]) -> bool:
    """Occupies its slot: pending or confirmed, and not void."""
    return reservation.status in LIVE_STATUSES and not is_void(reservation, subscriptions)


def reservation_start(reservation: Reservation, tz=LOCAL_TZ) -> datetime:
    day = datetime.combine(reservation.date, datetime.min.time(), tzinfo=tz)
    return day + timedelta(minutes=to_minutes(reservation.start_time))


def reservation_end(reservation: Reservation, tz=LOCAL_TZ) -> datetime:
    return reservation_start(reservation, tz) + timedelta(
        minutes=hours_to_minutes(reservation.duration)
    )


def is_upcoming(reservation: Reservation, now: datetime) -> bool:
    """Hidden from upcoming views once ``start + duration <= now``."""
    now = _aware(now)
    return reservation_end(reservation, now.tzinfo) > now


def is_current(reservation: Reservation, today: date) -> bool:
    """The coarser admin filter: same day or later."""
    return reservation.date >= today
