"""
Booking service – the engine's entry points over storage.

Each operation loads what it needs from ``fieldbook.db``, asks the pure
core (``fieldbook.core``) for a decision and writes the outcome back.
Availability is never cached: creation re-checks the slot inside the
insert transaction.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from fieldbook import db
from fieldbook.config import FOOTBALL_WEEKDAY_OPENING, NIGHT_START_DEFAULT
from fieldbook.core import lifecycle, slots
from fieldbook.core.clock import Clock, PricingConfig, SystemClock
from fieldbook.core.conflicts import Availability, BlockKind, check_availability
from fieldbook.core.lifecycle import CONFIRMATION_WINDOW, ConfirmOutcome
from fieldbook.core.planning import weekly_planning
from fieldbook.core.pricing import compute_price
from fieldbook.core.stats import compute_stats
from fieldbook.core.subscriptions import is_expired as subscription_is_expired
from fieldbook.core.subscriptions import materialize, occurrence_dates
from fieldbook.core.timeofday import end_time, to_minutes
from fieldbook.errors import (
    ConfirmationExpired,
    ContactBlocked,
    FieldNotFound,
    InvalidSlot,
    InvalidTransition,
    ReservationNotFound,
    SlotConflict,
    SubscriptionNotFound,
)
from fieldbook.models import (
    AvailabilityResponse,
    FootballFormat,
    PlanningResponse,
    PriceQuote,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    ReservationView,
    SlotInfo,
    SlotListResponse,
    Sport,
    StatsResponse,
    Subscription,
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionStatus,
    SweepResponse,
    Terrain,
    TerrainCreate,
)
from fieldbook.services.email import NotificationDispatcher
from fieldbook.services.gate import AllowAllGate, ReservationGate

logger = logging.getLogger(__name__)

NIGHT_START_SETTING = "night_start"


class _SilentDispatcher:
    async def reservation_created(self, reservation: Reservation, field: Terrain) -> None:
        pass

    async def reservation_confirmed(self, reservation: Reservation, field: Terrain) -> None:
        pass


class BookingService:
    """Slot generation, availability, pricing and the reservation lifecycle."""

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        gate: ReservationGate | None = None,
        dispatcher: NotificationDispatcher | None = None,
        confirmation_window: timedelta = CONFIRMATION_WINDOW,
        weekday_opening: str = FOOTBALL_WEEKDAY_OPENING,
    ) -> None:
        self.clock = clock or SystemClock()
        self._gate = gate or AllowAllGate()
        self._dispatcher = dispatcher or _SilentDispatcher()
        self._window = confirmation_window
        self._weekday_opening = weekday_opening

    # ── Settings ──────────────────────────────────────────────────────

    async def pricing_config(self) -> PricingConfig:
        stored = await db.get_setting(NIGHT_START_SETTING)
        return PricingConfig(night_start=stored or NIGHT_START_DEFAULT)

    async def set_night_start(self, value: str) -> PricingConfig:
        to_minutes(value)
        await db.set_setting(NIGHT_START_SETTING, value, self.clock.now())
        logger.info("Night start set to %s", value)
        return PricingConfig(night_start=value)

    # ── Fields ────────────────────────────────────────────────────────

    async def get_field(self, field_id: int, *, bookable: bool = False) -> Terrain:
        field = await db.get_field(field_id)
        if field is None or (bookable and not field.active):
            raise FieldNotFound(f"Field {field_id} not found")
        return field

    async def list_fields(
        self, *, include_inactive: bool = False, sport: str | None = None
    ) -> list[Terrain]:
        return await db.list_fields(active_only=not include_inactive, sport=sport)

    @staticmethod
    def _football_format(body: TerrainCreate) -> FootballFormat | None:
        if body.sport is not Sport.FOOTBALL:
            return None
        return body.football_format or slots.infer_football_format(body.name)

    async def create_field(self, body: TerrainCreate) -> Terrain:
        field = await db.create_field(body, self._football_format(body), self.clock.now())
        logger.info("Created field %d (%s, %s)", field.id, field.name, field.sport)
        return field

    async def update_field(self, field_id: int, body: TerrainCreate) -> Terrain:
        await self.get_field(field_id)
        field = await db.update_field(field_id, body, self._football_format(body))
        if field is None:
            raise FieldNotFound(f"Field {field_id} not found")
        return field

    # ── Slots, availability and prices ────────────────────────────────

    def _legal_starts(self, field: Terrain, on: date, duration: float) -> list[str]:
        return slots.generate_slots(
            field, on, duration=duration, weekday_opening=self._weekday_opening
        )

    def _require_legal_start(self, field: Terrain, on: date, start: str, duration: float) -> None:
        if start not in self._legal_starts(field, on, duration):
            logger.info("Rejected %s on field %d at %s: not a slot", on, field.id, start)
            raise InvalidSlot(
                f"{start} is not a bookable start time for {field.name} on {on.isoformat()}",
                details={"start_time": start, "date": on.isoformat()},
            )

    def _has_started(self, on: date, start: str) -> bool:
        now = self.clock.now()
        if on != now.date():
            return on < now.date()
        return to_minutes(start) <= now.hour * 60 + now.minute

    async def generate_slots(
        self, field_id: int, on: date, duration: float | None = None
    ) -> list[str]:
        field = await self.get_field(field_id)
        return self._legal_starts(field, on, slots.effective_duration(field, duration))

    async def slot_board(
        self, field_id: int, on: date, duration: float | None = None
    ) -> SlotListResponse:
        """Every generated slot with its availability and quoted price."""
        field = await self.get_field(field_id)
        length = slots.effective_duration(field, duration)
        reservations, subscriptions = await db.load_slot_context(field_id, on)
        config = await self.pricing_config()

        board = []
        for start in self._legal_starts(field, on, length):
            if self._has_started(on, start):
                verdict = Availability(available=False, reason="This slot has already started")
            else:
                verdict = check_availability(
                    field, on, start, length, reservations, subscriptions
                )
            board.append(SlotInfo(
                start_time=start,
                end_time=end_time(start, length),
                available=verdict.available,
                reason=verdict.reason,
                price=compute_price(field, start, length, config),
            ))
        return SlotListResponse(field_id=field_id, date=on, duration=length, slots=board)

    async def check_availability(
        self, field_id: int, on: date, start: str, duration: float | None = None
    ) -> AvailabilityResponse:
        field = await self.get_field(field_id)
        length = slots.effective_duration(field, duration)
        self._require_legal_start(field, on, start, length)

        reservations, subscriptions = await db.load_slot_context(field_id, on)
        verdict = check_availability(field, on, start, length, reservations, subscriptions)
        return AvailabilityResponse(
            field_id=field_id,
            date=on,
            start_time=start,
            duration=length,
            available=verdict.available,
            reason=verdict.reason,
            blocked_by=verdict.kind.value if verdict.kind else None,
        )

    async def quote_price(
        self, field_id: int, start: str, duration: float | None = None
    ) -> PriceQuote:
        field = await self.get_field(field_id)
        length = slots.effective_duration(field, duration)
        config = await self.pricing_config()
        return PriceQuote(
            field_id=field_id,
            start_time=start,
            requested_duration=duration,
            duration=length,
            night_start=config.night_start,
            price=compute_price(field, start, length, config),
        )

    # ── Reservation lifecycle ─────────────────────────────────────────

    async def create_reservation(
        self,
        request: ReservationRequest,
        *,
        status: ReservationStatus = ReservationStatus.PENDING,
        staff: bool = False,
    ) -> Reservation:
        """
        Validate, check and store a reservation.

        Customer bookings start ``pending`` with a confirmation token.
        Staff bookings may be stored directly as ``confirmed`` and may be
        placed on slots that have already started.
        """
        field = await self.get_field(request.field_id, bookable=True)
        length = slots.effective_duration(field, request.duration)
        self._require_legal_start(field, request.date, request.start_time, length)
        if not staff and self._has_started(request.date, request.start_time):
            raise InvalidSlot(
                "This slot has already started",
                details={"start_time": request.start_time, "date": request.date.isoformat()},
            )

        decision = await self._gate.may_reserve(
            request.phone, str(request.email), request.device_fingerprint
        )
        if not decision.allowed:
            raise ContactBlocked(decision.reason or "Reservations are not allowed for this contact")

        config = await self.pricing_config()
        now = self.clock.now()
        pending = status == ReservationStatus.PENDING
        draft = Reservation(
            customer_name=request.customer_name,
            phone=request.phone,
            email=str(request.email),
            field_id=field.id,
            date=request.date,
            start_time=request.start_time,
            duration=length,
            status=status,
            confirmation_token=lifecycle.new_token() if pending else None,
            price=compute_price(field, request.start_time, length, config),
            note=request.note,
            created_at=now,
        )

        def resolve(reservations, subscriptions):
            return check_availability(
                field, request.date, request.start_time, length, reservations, subscriptions
            )

        stored = await db.insert_reservation_if_free(draft, resolve)
        if isinstance(stored, Availability):
            logger.info(
                "Rejected %s on field %d at %s: %s",
                request.date, field.id, request.start_time, stored.reason,
            )
            raise self._conflict(stored)

        logger.info(
            "Reservation %d created (%s) on field %d %s %s",
            stored.id, stored.status.value, field.id, stored.date, stored.start_time,
        )
        await self._notify("reservation_created", stored, field)
        return stored

    @staticmethod
    def _conflict(verdict: Availability, on: date | None = None) -> SlotConflict:
        details = {
            "blocked_by": verdict.kind.value if verdict.kind else None,
            "blocking_id": verdict.blocking_id,
        }
        if on is not None:
            details["date"] = on.isoformat()
        return SlotConflict(verdict.reason or "Slot is not available", details=details)

    async def confirm(self, token: str) -> Reservation:
        """
        Confirm the pending reservation holding *token*.

        An overdue reservation is cancelled and ConfirmationExpired is
        raised; an unknown or already used token raises
        ReservationNotFound.
        """
        now = self.clock.now()
        reservation = await db.get_reservation_by_token(token)
        outcome = lifecycle.confirmation_outcome(reservation, now, self._window)

        if outcome is ConfirmOutcome.NOT_FOUND or reservation is None or reservation.id is None:
            raise ReservationNotFound("Unknown or already used confirmation link")

        if outcome is ConfirmOutcome.EXPIRED:
            await db.update_reservation_status(
                reservation.id, ReservationStatus.PENDING, ReservationStatus.CANCELLED, now
            )
            logger.info("Reservation %d expired before confirmation", reservation.id)
            raise ConfirmationExpired(
                "The confirmation window has closed; the reservation was cancelled"
            )

        applied = await db.update_reservation_status(
            reservation.id, ReservationStatus.PENDING, ReservationStatus.CONFIRMED, now
        )
        if not applied:
            raise ReservationNotFound("Unknown or already used confirmation link")

        confirmed = await self.get_reservation(reservation.id)
        logger.info("Reservation %d confirmed", confirmed.id)
        field = await db.get_field(confirmed.field_id)
        if field is not None:
            await self._notify("reservation_confirmed", confirmed, field)
        return confirmed

    async def change_status(
        self, reservation_id: int, target: ReservationStatus
    ) -> Reservation:
        reservation = await self.get_reservation(reservation_id)
        if not lifecycle.check_transition(reservation.status, target):
            return reservation

        applied = await db.update_reservation_status(
            reservation_id, reservation.status, target, self.clock.now()
        )
        if not applied:
            current = await self.get_reservation(reservation_id)
            raise InvalidTransition(
                f"Reservation {reservation_id} changed to {current.status.value} meanwhile",
                details={"from": current.status.value, "to": target.value},
            )

        updated = await self.get_reservation(reservation_id)
        logger.info(
            "Reservation %d: %s -> %s", reservation_id, reservation.status.value, target.value
        )
        if target == ReservationStatus.CONFIRMED:
            field = await db.get_field(updated.field_id)
            if field is not None:
                await self._notify("reservation_confirmed", updated, field)
        return updated

    async def expire_if_overdue(self, reservation_id: int) -> Reservation:
        """Cancel the reservation if its confirmation window has closed.  Idempotent."""
        now = self.clock.now()
        reservation = await self.get_reservation(reservation_id)
        if lifecycle.is_expired(reservation, now, self._window):
            await db.update_reservation_status(
                reservation_id, ReservationStatus.PENDING, ReservationStatus.CANCELLED, now
            )
            reservation = await self.get_reservation(reservation_id)
        return reservation

    async def sweep_expired(self) -> int:
        now = self.clock.now()
        pending = await db.list_reservations(status=ReservationStatus.PENDING)
        cancelled = 0
        for reservation in lifecycle.select_expired(pending, now, self._window):
            if await db.update_reservation_status(
                reservation.id, ReservationStatus.PENDING, ReservationStatus.CANCELLED, now
            ):
                cancelled += 1
        if cancelled:
            logger.info("Cancelled %d unconfirmed reservation(s)", cancelled)
        return cancelled

    async def expire_subscriptions(self) -> int:
        now = self.clock.now()
        active = await db.list_subscriptions(status=SubscriptionStatus.ACTIVE)
        expired = 0
        for sub in active:
            if subscription_is_expired(sub, now.date()) and await db.update_subscription_status(
                sub.id, SubscriptionStatus.EXPIRED, now, expected=SubscriptionStatus.ACTIVE
            ):
                expired += 1
        if expired:
            logger.info("Expired %d subscription(s)", expired)
        return expired

    async def sweep(self) -> SweepResponse:
        return SweepResponse(
            cancelled_reservations=await self.sweep_expired(),
            expired_subscriptions=await self.expire_subscriptions(),
        )

    async def _notify(self, event: str, reservation: Reservation, field: Terrain) -> None:
        try:
            await getattr(self._dispatcher, event)(reservation, field)
        except Exception:
            logger.exception("Notification %s failed for reservation %s", event, reservation.id)

    # ── Reservation views ─────────────────────────────────────────────

    async def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = await db.get_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        return reservation

    async def list_reservations(
        self,
        *,
        view: ReservationView = ReservationView.UPCOMING,
        field_id: int | None = None,
        on: date | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]:
        rows = await db.list_reservations(field_id=field_id, on=on, status=status)
        if view is ReservationView.ALL:
            return rows

        subs_by_id = {s.id: s for s in await db.list_subscriptions()}
        now = self.clock.now()
        rows = [r for r in rows if not lifecycle.is_void(r, subs_by_id)]
        if view is ReservationView.UPCOMING:
            return [r for r in rows if lifecycle.is_upcoming(r, now)]
        return [r for r in rows if lifecycle.is_current(r, now.date())]

    async def planning(self, field_id: int, start: date, days: int = 7) -> PlanningResponse:
        field = await self.get_field(field_id)
        reservations = await db.list_reservations(
            field_id=field_id, date_from=start, date_to=start + timedelta(days=days - 1)
        )
        subscriptions = await db.list_subscriptions(field_id=field_id)
        return PlanningResponse(
            field_id=field_id,
            days=weekly_planning(
                field,
                start,
                reservations,
                subscriptions,
                days=days,
                weekday_opening=self._weekday_opening,
            ),
        )

    async def stats(self, date_from: date, date_to: date) -> StatsResponse:
        reservations = await db.list_reservations(date_from=date_from, date_to=date_to)
        fields = {f.id: f for f in await db.list_fields()}
        subscriptions = await db.list_subscriptions()
        return compute_stats(
            reservations, fields, subscriptions, await self.pricing_config(), date_from, date_to
        )

    # ── Subscriptions ─────────────────────────────────────────────────

    async def get_subscription(self, sub_id: int) -> Subscription:
        sub = await db.get_subscription(sub_id)
        if sub is None:
            raise SubscriptionNotFound(f"Subscription {sub_id} not found")
        return sub

    async def list_subscriptions(
        self, *, field_id: int | None = None, status: SubscriptionStatus | None = None
    ) -> list[Subscription]:
        return await db.list_subscriptions(field_id=field_id, status=status)

    async def create_subscription(self, body: SubscriptionCreate) -> SubscriptionCreated:
        """
        Store a weekly subscription and, unless disabled, book one
        confirmed reservation for each remaining occurrence.

        Every upcoming occurrence is checked inside the insert
        transaction.  A clash with another active subscription refuses
        the subscription.  Otherwise occupied dates are skipped and
        reported when materializing, and refuse the subscription when
        not; a subscription whose every upcoming date is occupied is
        refused as well.
        """
        field = await self.get_field(body.field_id, bookable=True)
        length = slots.effective_duration(field, body.duration)
        body = body.model_copy(update={"duration": length})

        dates = occurrence_dates(body)
        if not dates:
            raise InvalidSlot("The validity window contains no matching weekday")
        for on in dates:
            self._require_legal_start(field, on, body.start_time, length)

        now = self.clock.now()
        upcoming = [on for on in dates if on >= now.date()]

        def resolve(on, reservations, subscriptions):
            # weekly rule first: a materialized rival is still a subscription clash
            rule = check_availability(field, on, body.start_time, length, [], subscriptions)
            if rule.kind is BlockKind.SUBSCRIPTION:
                return rule
            return check_availability(
                field, on, body.start_time, length, reservations, subscriptions
            )

        def plan(verdicts):
            blocked = {on: v for on, v in verdicts.items() if not v.available}
            for on, verdict in blocked.items():
                if verdict.kind is BlockKind.SUBSCRIPTION:
                    raise self._conflict(verdict, on)
            if blocked and (not body.materialize or len(blocked) == len(verdicts)):
                on, verdict = next(iter(blocked.items()))
                raise self._conflict(verdict, on)
            if not body.materialize:
                return []
            return [on for on in verdicts if on not in blocked]

        config = await self.pricing_config()
        sub, stored = await db.insert_subscription_if_free(
            body,
            now,
            upcoming,
            resolve,
            plan,
            price=compute_price(field, body.start_time, length, config),
        )

        booked = {r.date for r in stored}
        skipped = [on for on in upcoming if on not in booked] if body.materialize else []
        logger.info(
            "Created subscription %d on field %d (weekday %d at %s), %d booked",
            sub.id, field.id, sub.weekday, sub.start_time, len(stored),
        )
        if skipped:
            logger.info("Subscription %d skipped occupied dates: %s", sub.id, skipped)
        return SubscriptionCreated(
            subscription=sub, materialized=len(stored), skipped_dates=skipped
        )

    async def change_subscription_status(
        self, sub_id: int, status: SubscriptionStatus
    ) -> Subscription:
        sub = await self.get_subscription(sub_id)
        if not lifecycle.check_subscription_transition(sub.status, status):
            return sub
        applied = await db.update_subscription_status(
            sub_id, status, self.clock.now(), expected=sub.status
        )
        if not applied:
            raise InvalidTransition(
                f"Subscription {sub_id} changed while updating it; reload and retry"
            )
        logger.info("Subscription %d set to %s", sub_id, status.value)
        return await self.get_subscription(sub_id)

    async def delete_subscription(self, sub_id: int) -> None:
        if not await db.delete_subscription(sub_id):
            raise SubscriptionNotFound(f"Subscription {sub_id} not found")
        logger.info("Deleted subscription %d", sub_id)
