"""Tests for subscription windows, occurrences and materialization."""

from datetime import date

from fieldbook.core import subscriptions
from fieldbook.models import ReservationStatus, SubscriptionStatus
from tests.mocks.models import NOW, TUESDAY, make_subscription


class TestWindow:
    def test_explicit_dates(self):
        sub = make_subscription()
        assert subscriptions.validity_window(sub) == (date(2026, 3, 1), date(2026, 3, 31))

    def test_month_year_covers_whole_month(self):
        sub = make_subscription(date_start=None, date_end=None, month=2, year=2028)
        assert subscriptions.validity_window(sub) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_occurs_on_requires_weekday_window_and_active(self):
        sub = make_subscription()
        assert subscriptions.occurs_on(sub, TUESDAY)
        assert not subscriptions.occurs_on(sub, date(2026, 3, 11))
        assert not subscriptions.occurs_on(sub, date(2026, 4, 7))
        cancelled = make_subscription(status=SubscriptionStatus.CANCELLED)
        assert not subscriptions.occurs_on(cancelled, TUESDAY)


class TestOccurrences:
    def test_all_tuesdays_of_march(self):
        dates = subscriptions.occurrence_dates(make_subscription())
        assert [d.day for d in dates] == [3, 10, 17, 24, 31]

    def test_from_date_skips_past_occurrences(self):
        dates = subscriptions.occurrence_dates(make_subscription(), from_date=TUESDAY)
        assert [d.day for d in dates] == [10, 17, 24, 31]

    def test_materialize_creates_confirmed_linked_drafts(self):
        drafts = subscriptions.materialize(make_subscription(), NOW, from_date=TUESDAY, price=60)
        assert len(drafts) == 4
        for draft in drafts:
            assert draft.status is ReservationStatus.CONFIRMED
            assert draft.subscription_id == 7
            assert draft.confirmation_token is None
            assert draft.start_time == "20:00"
            assert draft.price == 60


class TestExpiry:
    def test_expired_after_window(self):
        sub = make_subscription()
        assert not subscriptions.is_expired(sub, date(2026, 3, 31))
        assert subscriptions.is_expired(sub, date(2026, 4, 1))

    def test_only_active_subscriptions_expire(self):
        sub = make_subscription(status=SubscriptionStatus.CANCELLED)
        assert not subscriptions.is_expired(sub, date(2026, 5, 1))

    def test_days_remaining(self):
        sub = make_subscription()
        assert subscriptions.days_remaining(sub, TUESDAY) == 21
        assert subscriptions.days_remaining(sub, date(2026, 4, 2)) == 0
