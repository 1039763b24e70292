"""Tests for the weekly planning grid and statistics."""

from datetime import date

from fieldbook.core.clock import PricingConfig
from fieldbook.core.planning import weekly_planning
from fieldbook.core.stats import compute_stats
from fieldbook.models import ReservationStatus, SubscriptionStatus
from tests.mocks.models import (
    FOOTBALL_SIX,
    TENNIS_COURT,
    TUESDAY,
    make_reservation,
    make_subscription,
)


def _cells(day):
    return {cell.time: cell for cell in day.cells}


class TestPlanning:
    def test_week_has_seven_days_with_saturday_hours(self):
        days = weekly_planning(FOOTBALL_SIX, TUESDAY, [], [])
        assert [d.date for d in days] == [date(2026, 3, d) for d in range(10, 17)]
        assert days[0].cells[0].time == "16:00"
        assert days[4].cells[0].time == "10:00"  # Saturday
        assert all(c.state == "free" for c in days[0].cells)

    def test_reservation_spans_three_cells(self):
        days = weekly_planning(FOOTBALL_SIX, TUESDAY, [make_reservation()], [], days=1)
        cells = _cells(days[0])
        assert cells["20:00"].state == "reservation"
        assert cells["20:00"].first and cells["20:00"].span == 3
        assert cells["20:30"].state == "reservation" and not cells["20:30"].first
        assert cells["21:00"].reservation_id == 100
        assert cells["21:30"].state == "free"

    def test_subscription_occurrence_is_shown(self):
        days = weekly_planning(FOOTBALL_SIX, TUESDAY, [], [make_subscription()], days=2)
        assert _cells(days[0])["20:00"].state == "subscription"
        assert _cells(days[1])["20:00"].state == "free"

    def test_materialized_occurrence_shown_once(self):
        generated = make_reservation(subscription_id=7)
        days = weekly_planning(FOOTBALL_SIX, TUESDAY, [generated], [make_subscription()], days=1)
        cell = _cells(days[0])["20:00"]
        assert cell.state == "reservation"
        assert cell.subscription_id == 7

    def test_cancelled_reservation_leaves_cell_free(self):
        cancelled = make_reservation(status=ReservationStatus.CANCELLED)
        days = weekly_planning(FOOTBALL_SIX, TUESDAY, [cancelled], [], days=1)
        assert _cells(days[0])["20:00"].state == "free"


class TestStats:
    def test_revenue_per_sport(self):
        fields = {FOOTBALL_SIX.id: FOOTBALL_SIX, TENNIS_COURT.id: TENNIS_COURT}
        reservations = [
            make_reservation(id=1, price=60),
            make_reservation(id=2, start_time="17:00", price=None),  # priced at 50
            make_reservation(
                id=3, field_id=TENNIS_COURT.id, start_time="18:00", duration=1.5, price=None
            ),  # 20 + 15
            make_reservation(id=4, status=ReservationStatus.CANCELLED, price=60),
            make_reservation(id=5, date=date(2026, 4, 1), price=60),
            make_reservation(id=6, subscription_id=7, price=60),
        ]
        subs = [make_subscription(status=SubscriptionStatus.CANCELLED)]

        stats = compute_stats(
            reservations, fields, subs, PricingConfig("19:00"), date(2026, 3, 1), date(2026, 3, 31)
        )

        assert stats.total_reservations == 3
        assert stats.total_revenue == 145
        assert stats.average_revenue == round(145 / 3, 2)
        by_sport = {s.sport: s for s in stats.by_sport}
        assert by_sport["football"].reservations == 2
        assert by_sport["football"].revenue == 110
        assert by_sport["tennis"].revenue == 35

    def test_empty_range(self):
        stats = compute_stats([], {}, [], PricingConfig(), TUESDAY, TUESDAY)
        assert stats.total_reservations == 0
        assert stats.average_revenue == 0
        assert stats.by_sport == []
