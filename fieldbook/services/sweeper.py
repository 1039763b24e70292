"""
Periodic expiry sweep.

Cancels pending reservations whose confirmation window has closed and
moves subscriptions past their validity window to ``expired``.  Both
operations are idempotent, so a sweep that overlaps a confirmation or
another sweep changes nothing twice.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from fieldbook.config import SWEEP_INTERVAL
from fieldbook.models import SweepResponse
from fieldbook.services.booking import BookingService

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Runs ``BookingService.sweep()`` every *interval* seconds."""

    def __init__(
        self,
        service_factory: Callable[[], BookingService],
        *,
        interval: float = SWEEP_INTERVAL,
    ) -> None:
        self._service_factory = service_factory
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self.last_result: SweepResponse | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        # catch up on anything that went stale while the app was down
        await self._safe_sweep()
        self._task = asyncio.create_task(self._loop(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (every %gs)", self._interval)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("Expiry sweeper stopped")

    async def sweep_once(self) -> SweepResponse:
        self.last_result = await self._service_factory().sweep()
        logger.debug(
            "Sweep done: %d reservation(s) cancelled, %d subscription(s) expired",
            self.last_result.cancelled_reservations,
            self.last_result.expired_subscriptions,
        )
        return self.last_result

    async def _safe_sweep(self) -> None:
        try:
            await self.sweep_once()
        except Exception:
            logger.exception("Expiry sweep failed, will retry")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._safe_sweep()
