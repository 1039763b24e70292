"""Tests for the background expiry sweeper."""

import asyncio

from fieldbook.models import (
    ReservationRequest,
    ReservationStatus,
    SubscriptionCreate,
    TerrainCreate,
)
from fieldbook.services.sweeper import ExpirySweeper
from tests.mocks.models import FOOTBALL_SIX_CREATE, reservation_body, subscription_body


def _request(field) -> ReservationRequest:
    return ReservationRequest(**reservation_body(field_id=field.id))


class _FailingService:
    async def sweep(self):
        raise RuntimeError("database is locked")


class TestExpirySweeper:
    async def test_sweep_once(self, database, service, clock):
        field = await service.create_field(TerrainCreate(**FOOTBALL_SIX_CREATE))
        pending = await service.create_reservation(_request(field))
        await service.create_subscription(
            SubscriptionCreate(
                **subscription_body(field_id=field.id, start_time="17:00", materialize=False)
            )
        )

        sweeper = ExpirySweeper(lambda: service)
        clock.set(clock.now().replace(month=4, day=1))
        result = await sweeper.sweep_once()

        assert result.cancelled_reservations == 1
        assert result.expired_subscriptions == 1
        assert sweeper.last_result == result
        assert (await service.get_reservation(pending.id)).status == ReservationStatus.CANCELLED

    async def test_sweep_is_idempotent(self, database, service, clock):
        field = await service.create_field(TerrainCreate(**FOOTBALL_SIX_CREATE))
        await service.create_reservation(_request(field))
        clock.advance(minutes=30)

        sweeper = ExpirySweeper(lambda: service)
        assert (await sweeper.sweep_once()).cancelled_reservations == 1
        assert (await sweeper.sweep_once()).cancelled_reservations == 0

    async def test_start_and_stop(self, database, service):
        sweeper = ExpirySweeper(lambda: service, interval=0.01)
        await sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()
        assert not sweeper.running
        assert sweeper.last_result is not None

    async def test_failures_are_logged_not_raised(self, caplog):
        sweeper = ExpirySweeper(lambda: _FailingService(), interval=3600)
        await sweeper.start()
        await sweeper.stop()
        assert "Expiry sweep failed" in caplog.text
        assert sweeper.last_result is None

    async def test_stop_without_start(self, service):
        await ExpirySweeper(lambda: service).stop()

