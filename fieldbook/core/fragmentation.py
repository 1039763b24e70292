"""
Anti-fragmentation advisor for fixed-length sessions.

On a 30-minute grid with 90-minute sessions, a booking that starts
"between" two others can strand 30 or 60 minutes that no session can
ever fill.  The advisor finds the alignment (start minute modulo the
session length) that most existing bookings already use, and new
bookings must follow it.
"""

from __future__ import annotations

from collections.abc import Iterable

from fieldbook.core.timeofday import to_minutes


def phase_of(start: str, session_minutes: int) -> int:
    return to_minutes(start) % session_minutes


def dominant_phase(starts: Iterable[str], session_minutes: int) -> int | None:
    """
    Most frequent ``start % session_minutes`` among *starts*.

    Ties go to the residue seen first.  Returns None when there are no
    starts, meaning any alignment is acceptable.
    """
    counts: dict[int, int] = {}
    for start in starts:
        residue = phase_of(start, session_minutes)
        counts[residue] = counts.get(residue, 0) + 1

    best: int | None = None
    best_count = 0
    # dicts keep insertion order, so a strict ">" keeps the first-seen residue
    for residue, count in counts.items():
        if count > best_count:
            best, best_count = residue, count
    return best


def is_aligned(start: str, starts: Iterable[str], session_minutes: int) -> bool:
    phase = dominant_phase(starts, session_minutes)
    return phase is None or phase_of(start, session_minutes) == phase


def next_aligned_start(start: str, phase: int, session_minutes: int) -> int:
    """First minute at or after *start* whose residue equals *phase*."""
    minutes = to_minutes(start)
    return minutes + (phase - minutes) % session_minutes
