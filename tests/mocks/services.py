"""
Test doubles for the booking service's collaborators.

Nothing here touches SMTP or the blacklist table.
"""

from __future__ import annotations

from fieldbook.models import Reservation, Terrain
from fieldbook.services.gate import ALLOW, GateDecision


class RecordingDispatcher:
    """NotificationDispatcher that records events instead of sending them."""

    def __init__(self, *, fail: bool = False) -> None:
        self.events: list[tuple[str, int | None]] = []
        self._fail = fail

    async def reservation_created(self, reservation: Reservation, field: Terrain) -> None:
        self.events.append(("created", reservation.id))
        if self._fail:
            raise RuntimeError("SMTP is down")

    async def reservation_confirmed(self, reservation: Reservation, field: Terrain) -> None:
        self.events.append(("confirmed", reservation.id))
        if self._fail:
            raise RuntimeError("SMTP is down")


class StaticGate:
    """ReservationGate with a fixed answer; remembers who asked."""

    def __init__(self, decision: GateDecision = ALLOW) -> None:
        self.decision = decision
        self.calls: list[tuple[str, str, str | None]] = []

    async def may_reserve(
        self, phone: str, email: str, device_fingerprint: str | None
    ) -> GateDecision:
        self.calls.append((phone, email, device_fingerprint))
        return self.decision


class NoopSweeper:
    """Drop-in replacement for ExpirySweeper that does nothing."""

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass
