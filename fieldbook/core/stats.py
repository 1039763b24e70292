"""Reservation counts and revenue per sport over a date range."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from fieldbook.core.clock import PricingConfig
from fieldbook.core.lifecycle import is_live
from fieldbook.core.pricing import compute_price
from fieldbook.models import Reservation, SportStats, StatsResponse, Subscription, Terrain


def reservation_revenue(
    reservation: Reservation, field: Terrain | None, config: PricingConfig
) -> float:
    """Stored price when present, else priced with the current rates."""
    if reservation.price is not None:
        return reservation.price
    if field is None:
        return 0.0
    return compute_price(field, reservation.start_time, reservation.duration, config)


def compute_stats(
    reservations: Iterable[Reservation],
    fields: Mapping[int, Terrain],
    subscriptions: Iterable[Subscription],
    config: PricingConfig,
    date_from: date,
    date_to: date,
) -> StatsResponse:
    subs_by_id = {s.id: s for s in subscriptions}
    counts: dict[str, int] = {}
    revenue: dict[str, float] = {}

    for res in reservations:
        if not (date_from <= res.date <= date_to) or not is_live(res, subs_by_id):
            continue
        field = fields.get(res.field_id)
        sport = field.sport if field is not None else "unknown"
        counts[sport] = counts.get(sport, 0) + 1
        revenue[sport] = revenue.get(sport, 0.0) + reservation_revenue(res, field, config)

    total_reservations = sum(counts.values())
    total_revenue = round(sum(revenue.values()), 2)
    return StatsResponse(
        date_from=date_from,
        date_to=date_to,
        total_reservations=total_reservations,
        total_revenue=total_revenue,
        average_revenue=round(total_revenue / total_reservations, 2) if total_reservations else 0.0,
        by_sport=[
            SportStats(sport=sport, reservations=counts[sport], revenue=round(revenue[sport], 2))
            for sport in sorted(counts)
        ],
    )
