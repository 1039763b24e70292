"""Weekly planning grid for one field."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from fieldbook.config import FOOTBALL_WEEKDAY_OPENING
from fieldbook.core.conflicts import interval
from fieldbook.core.lifecycle import is_live
from fieldbook.core.slots import operating_window
from fieldbook.core.subscriptions import occurs_on
from fieldbook.core.timeofday import from_minutes
from fieldbook.models import PlanningCell, PlanningDay, Reservation, Subscription, Terrain


def _day_cells(
    field: Terrain,
    on: date,
    reservations: list[Reservation],
    subscriptions: list[Subscription],
    weekday_opening: str,
) -> list[PlanningCell]:
    window = operating_window(field, on, weekday_opening=weekday_opening)
    if window is None:
        return []

    subs_by_id = {s.id: s for s in subscriptions}
    bookings: list[tuple[tuple[int, int], PlanningCell]] = []
    for res in reservations:
        if res.field_id == field.id and res.date == on and is_live(res, subs_by_id):
            bookings.append((
                interval(res.start_time, res.duration),
                PlanningCell(
                    time="",
                    state="reservation",
                    reservation_id=res.id,
                    subscription_id=res.subscription_id,
                    customer_name=res.customer_name,
                ),
            ))
    materialized = {r.subscription_id for _, r in bookings if r.subscription_id is not None}
    for sub in subscriptions:
        if sub.field_id == field.id and sub.id not in materialized and occurs_on(sub, on):
            bookings.append((
                interval(sub.start_time, sub.duration),
                PlanningCell(
                    time="",
                    state="subscription",
                    subscription_id=sub.id,
                    customer_name=sub.customer_name,
                ),
            ))

    starts = window.starts()
    cells: list[PlanningCell] = []
    seen: set[int] = set()
    for minute in starts:
        cell = PlanningCell(time=from_minutes(minute), state="free")
        for index, (bounds, template) in enumerate(bookings):
            if bounds[0] <= minute < bounds[1]:
                cell = template.model_copy(update={"time": from_minutes(minute)})
                if index not in seen:
                    seen.add(index)
                    span = sum(1 for m in starts if bounds[0] <= m < bounds[1])
                    cell = cell.model_copy(update={"first": True, "span": span})
                break
        cells.append(cell)
    return cells


def weekly_planning(
    field: Terrain,
    start: date,
    reservations: Iterable[Reservation],
    subscriptions: Iterable[Subscription],
    *,
    days: int = 7,
    weekday_opening: str = FOOTBALL_WEEKDAY_OPENING,
) -> list[PlanningDay]:
    reservations = list(reservations)
    subscriptions = list(subscriptions)
    planning = []
    for offset in range(days):
        on = start + timedelta(days=offset)
        planning.append(PlanningDay(
            date=on,
            cells=_day_cells(field, on, reservations, subscriptions, weekday_opening),
        ))
    return planning
