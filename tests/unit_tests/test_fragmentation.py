"""Tests for the anti-fragmentation advisor."""

from fieldbook.core.fragmentation import (
    dominant_phase,
    is_aligned,
    next_aligned_start,
    phase_of,
)


class TestDominantPhase:
    def test_no_bookings_means_no_constraint(self):
        assert dominant_phase([], 90) is None

    def test_single_booking_sets_phase(self):
        assert dominant_phase(["20:00"], 90) == 1200 % 90

    def test_majority_wins(self):
        assert dominant_phase(["18:00", "19:30", "20:00"], 90) == 0

    def test_tie_goes_to_first_seen(self):
        assert dominant_phase(["20:00", "18:00"], 90) == phase_of("20:00", 90)
        assert dominant_phase(["18:00", "20:00"], 90) == phase_of("18:00", 90)


class TestAlignment:
    def test_same_residue_is_aligned(self):
        assert is_aligned("21:30", ["20:00"], 90)
        assert is_aligned("18:30", ["20:00"], 90)

    def test_other_residue_is_not_aligned(self):
        assert not is_aligned("22:00", ["20:00"], 90)
        assert not is_aligned("20:30", ["20:00"], 90)

    def test_anything_goes_without_bookings(self):
        assert is_aligned("16:30", [], 90)

    def test_next_aligned_start(self):
        phase = phase_of("20:00", 90)
        assert next_aligned_start("22:00", phase, 90) == 23 * 60
        assert next_aligned_start("21:30", phase, 90) == 21 * 60 + 30
