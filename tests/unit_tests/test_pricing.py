"""Tests for the pricing calculator."""

import pytest

from fieldbook.core.clock import PricingConfig
from fieldbook.core.pricing import compute_price, rate_at
from fieldbook.errors import InvalidDuration
from tests.mocks.models import FOOTBALL_SIX, PADEL_COURT, TENNIS_COURT, make_field

NIGHT_19 = PricingConfig(night_start="19:00")


class TestFootball:
    def test_night_start_is_flat_night_rate(self):
        assert compute_price(FOOTBALL_SIX, "20:00", 1.5, NIGHT_19) == 60

    def test_day_start_is_flat_day_rate(self):
        assert compute_price(FOOTBALL_SIX, "18:00", 1.5, NIGHT_19) == 50

    def test_session_crossing_night_uses_start_rate(self):
        assert compute_price(FOOTBALL_SIX, "18:30", 1.5, NIGHT_19) == 50

    def test_duration_is_not_multiplied(self):
        assert compute_price(FOOTBALL_SIX, "20:00", 3, NIGHT_19) == 60

    def test_missing_night_price_falls_back_to_day(self):
        field = make_field(night_price=None)
        assert compute_price(field, "21:00", 1.5, NIGHT_19) == 50


class TestRacket:
    def test_boundary_is_night(self):
        assert compute_price(TENNIS_COURT, "19:00", 1, NIGHT_19) == 30

    def test_two_and_a_half_hours_straddling_night(self):
        # 17:30 day, 18:30 day, half hour from 19:30 at night
        assert compute_price(TENNIS_COURT, "17:30", 2.5, NIGHT_19) == 20 + 20 + 15
        # 18:00 day, 19:00 night, half hour from 20:00 at night
        assert compute_price(TENNIS_COURT, "18:00", 2.5, NIGHT_19) == 20 + 30 + 15

    def test_fraction_priced_at_its_own_start(self):
        # 18:00 day, half hour from 19:00 at night
        assert compute_price(TENNIS_COURT, "18:00", 1.5, NIGHT_19) == 20 + 15

    def test_without_night_price(self):
        assert compute_price(PADEL_COURT, "21:00", 1.5, NIGHT_19) == 60

    def test_night_start_setting_moves_boundary(self):
        assert compute_price(TENNIS_COURT, "19:00", 1, PricingConfig(night_start="20:00")) == 20

    def test_rate_past_midnight_stays_night(self):
        assert rate_at(TENNIS_COURT, 24 * 60, NIGHT_19) == 30

    @pytest.mark.parametrize("duration", [0, -1])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(InvalidDuration):
            compute_price(TENNIS_COURT, "10:00", duration, NIGHT_19)
