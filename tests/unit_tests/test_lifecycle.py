"""Tests for the reservation state machine and visibility predicates."""

from datetime import date, datetime, timedelta

import pytest

from fieldbook.config import LOCAL_TZ
from fieldbook.core import lifecycle
from fieldbook.core.lifecycle import ConfirmOutcome
from fieldbook.errors import InvalidTransition
from fieldbook.models import ReservationStatus, SubscriptionStatus
from tests.mocks.models import NOW, TUESDAY, make_reservation, make_subscription

P, C, X = ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED


class TestTransitions:
    @pytest.mark.parametrize("current,target", [(P, C), (P, X), (C, X)])
    def test_allowed(self, current, target):
        assert lifecycle.check_transition(current, target) is True

    @pytest.mark.parametrize("current", [P, C])
    def test_same_status_is_a_no_op(self, current):
        assert lifecycle.check_transition(current, current) is False

    @pytest.mark.parametrize("current,target", [(C, P), (X, P), (X, C), (X, X)])
    def test_forbidden(self, current, target):
        with pytest.raises(InvalidTransition):
            lifecycle.check_transition(current, target)


A, E = SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED
SC = SubscriptionStatus.CANCELLED


class TestSubscriptionTransitions:
    @pytest.mark.parametrize("current,target", [(A, E), (A, SC), (E, SC)])
    def test_allowed(self, current, target):
        assert lifecycle.check_subscription_transition(current, target) is True

    @pytest.mark.parametrize("current", [A, E, SC])
    def test_same_status_is_a_no_op(self, current):
        assert lifecycle.check_subscription_transition(current, current) is False

    @pytest.mark.parametrize("current,target", [(SC, A), (SC, E), (E, A)])
    def test_nothing_comes_back(self, current, target):
        with pytest.raises(InvalidTransition):
            lifecycle.check_subscription_transition(current, target)


class TestExpiry:
    def test_pending_past_window_is_expired(self):
        res = make_reservation(status=P)
        assert lifecycle.is_expired(res, NOW + timedelta(minutes=16))

    def test_exactly_fifteen_minutes_is_not_expired(self):
        res = make_reservation(status=P)
        assert not lifecycle.is_expired(res, NOW + timedelta(minutes=15))

    def test_confirmed_never_expires(self):
        assert not lifecycle.is_expired(make_reservation(status=C), NOW + timedelta(days=1))

    def test_naive_created_at_is_local_time(self):
        res = make_reservation(status=P, created_at=datetime(2026, 3, 10, 9, 0))
        assert lifecycle.is_expired(res, NOW + timedelta(minutes=20))

    def test_select_expired(self):
        fresh = make_reservation(id=1, status=P, created_at=NOW + timedelta(minutes=10))
        stale = make_reservation(id=2, status=P)
        done = make_reservation(id=3, status=C)
        later = NOW + timedelta(minutes=16)
        assert [r.id for r in lifecycle.select_expired([fresh, stale, done], later)] == [2]


class TestConfirmationOutcome:
    def test_unknown_token(self):
        assert lifecycle.confirmation_outcome(None, NOW) is ConfirmOutcome.NOT_FOUND

    @pytest.mark.parametrize("status", [C, X])
    def test_already_processed(self, status):
        res = make_reservation(status=status)
        assert lifecycle.confirmation_outcome(res, NOW) is ConfirmOutcome.NOT_FOUND

    def test_within_window(self):
        res = make_reservation(status=P)
        outcome = lifecycle.confirmation_outcome(res, NOW + timedelta(minutes=5))
        assert outcome is ConfirmOutcome.CONFIRMED

    def test_after_window(self):
        res = make_reservation(status=P)
        outcome = lifecycle.confirmation_outcome(res, NOW + timedelta(minutes=16))
        assert outcome is ConfirmOutcome.EXPIRED


class TestVisibility:
    def test_upcoming_until_end(self):
        res = make_reservation()  # Tuesday 20:00–21:30
        assert lifecycle.is_upcoming(res, datetime(2026, 3, 10, 21, 29, tzinfo=LOCAL_TZ))
        assert not lifecycle.is_upcoming(res, datetime(2026, 3, 10, 21, 30, tzinfo=LOCAL_TZ))

    def test_current_is_same_day_or_later(self):
        res = make_reservation()
        assert lifecycle.is_current(res, TUESDAY)
        assert not lifecycle.is_current(res, date(2026, 3, 11))

    def test_void_when_subscription_inactive(self):
        res = make_reservation(subscription_id=7)
        active = {7: make_subscription()}
        cancelled = {7: make_subscription(status=SubscriptionStatus.CANCELLED)}
        assert not lifecycle.is_void(res, active)
        assert lifecycle.is_void(res, cancelled)
        assert lifecycle.is_void(res, {})
        assert not lifecycle.is_live(res, cancelled)

    def test_one_off_is_never_void(self):
        assert not lifecycle.is_void(make_reservation(), {})


def test_tokens_are_unique_and_url_safe():
    tokens = {lifecycle.new_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all("/" not in t and "+" not in t for t in tokens)
