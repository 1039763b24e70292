"""
Weekly recurring subscriptions ("abonnements").

A subscription does not occupy the calendar by itself; it is a rule
that produces one occurrence per matching weekday inside its validity
window.  The window is either an explicit date range or a whole
calendar month.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

from fieldbook.models import (
    Reservation,
    ReservationStatus,
    Subscription,
    SubscriptionBase,
    SubscriptionStatus,
)


def validity_window(sub: SubscriptionBase) -> tuple[date, date] | None:
    if sub.date_start is not None and sub.date_end is not None:
        return sub.date_start, sub.date_end
    if sub.month is not None and sub.year is not None:
        last_day = calendar.monthrange(sub.year, sub.month)[1]
        return date(sub.year, sub.month, 1), date(sub.year, sub.month, last_day)
    return None


def covers(sub: SubscriptionBase, on: date) -> bool:
    window = validity_window(sub)
    return window is not None and window[0] <= on <= window[1]


def occurs_on(sub: Subscription, on: date) -> bool:
    """True when an active *sub* produces an occurrence on *on*."""
    return (
        sub.status == SubscriptionStatus.ACTIVE
        and sub.weekday == on.weekday()
        and covers(sub, on)
    )


def is_expired(sub: Subscription, today: date) -> bool:
    """An active subscription whose window closed before *today*."""
    if sub.status != SubscriptionStatus.ACTIVE:
        return False
    window = validity_window(sub)
    return window is not None and window[1] < today


def days_remaining(sub: Subscription, today: date) -> int:
    window = validity_window(sub)
    if window is None:
        return 0
    return max(0, (window[1] - today).days)


def occurrence_dates(sub: SubscriptionBase, *, from_date: date | None = None) -> list[date]:
    """Every date in the window falling on the subscription's weekday."""
    window = validity_window(sub)
    if window is None:
        return []
    first, last = window
    if from_date is not None and from_date > first:
        first = from_date

    offset = (sub.weekday - first.weekday()) % 7
    current = first + timedelta(days=offset)
    dates: list[date] = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def materialize(
    sub: Subscription,
    now: datetime,
    *,
    from_date: date | None = None,
    price: float | None = None,
) -> list[Reservation]:
    """Confirmed reservation drafts, one per occurrence, linked to *sub*."""
    return [
        Reservation(
            customer_name=sub.customer_name,
            phone=sub.phone,
            email=sub.email,
            field_id=sub.field_id,
            date=on,
            start_time=sub.start_time,
            duration=sub.duration,
            status=ReservationStatus.CONFIRMED,
            subscription_id=sub.id,
            price=price,
            created_at=now,
        )
        for on in occurrence_dates(sub, from_date=from_date)
    ]
