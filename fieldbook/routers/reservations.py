"""
Reservation endpoints.

Customers create pending reservations and confirm them through the
emailed link; everything else is staff-only.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status

from fieldbook.dependencies import Booking, CurrentStaff, PaginationParams, paginate
from fieldbook.models import (
    ConfirmationResponse,
    Reservation,
    ReservationListResponse,
    ReservationRequest,
    ReservationStatus,
    ReservationView,
    StaffReservationRequest,
    StatusChange,
    SweepResponse,
)
from fieldbook.rate_limit import BOOKING, CONFIRM, limiter

router = APIRouter(prefix="/api/reservations", tags=["reservations"])

# The token only ever travels by email.
_PUBLIC_EXCLUDE = {"confirmation_token"}


# ── Public ────────────────────────────────────────────────────────────────


@router.post(
    "",
    response_model=Reservation,
    response_model_exclude=_PUBLIC_EXCLUDE,
    status_code=status.HTTP_201_CREATED,
    operation_id="createReservation",
    summary="Request a reservation (pending until confirmed by email)",
)
@limiter.limit(BOOKING)
async def create_reservation(
    request: Request, body: ReservationRequest, service: Booking
) -> Reservation:
    return await service.create_reservation(body)


@router.get(
    "/confirm",
    response_model=ConfirmationResponse,
    response_model_exclude={"reservation": _PUBLIC_EXCLUDE},
    operation_id="confirmReservationLink",
    summary="Confirm a reservation from the emailed link",
)
@limiter.limit(CONFIRM)
async def confirm_reservation_link(
    request: Request,
    service: Booking,
    token: str = Query(..., min_length=8),
) -> ConfirmationResponse:
    reservation = await service.confirm(token)
    return ConfirmationResponse(message="Reservation confirmed", reservation=reservation)


@router.post(
    "/confirm",
    response_model=ConfirmationResponse,
    response_model_exclude={"reservation": _PUBLIC_EXCLUDE},
    operation_id="confirmReservation",
    summary="Confirm a reservation with its token",
)
@limiter.limit(CONFIRM)
async def confirm_reservation(
    request: Request,
    service: Booking,
    token: str = Query(..., min_length=8),
) -> ConfirmationResponse:
    reservation = await service.confirm(token)
    return ConfirmationResponse(message="Reservation confirmed", reservation=reservation)


# ── Staff ─────────────────────────────────────────────────────────────────


@router.post(
    "/staff",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
    operation_id="createStaffReservation",
    summary="Create a reservation on behalf of a customer",
)
async def create_staff_reservation(
    body: StaffReservationRequest, service: Booking, staff: CurrentStaff
) -> Reservation:
    return await service.create_reservation(body, status=body.status, staff=True)


@router.get(
    "",
    response_model=ReservationListResponse,
    operation_id="listReservations",
    summary="List reservations",
)
async def list_reservations(
    service: Booking,
    staff: CurrentStaff,
    pagination: PaginationParams = Depends(PaginationParams),
    view: ReservationView = Query(ReservationView.UPCOMING),
    field_id: int | None = Query(None),
    on: date | None = Query(None, alias="date"),
    reservation_status: ReservationStatus | None = Query(None, alias="status"),
) -> ReservationListResponse:
    items = await service.list_reservations(
        view=view, field_id=field_id, on=on, status=reservation_status
    )
    return paginate(items, pagination, ReservationListResponse)


@router.post(
    "/sweep",
    response_model=SweepResponse,
    operation_id="sweepExpired",
    summary="Cancel overdue pending reservations and expire finished subscriptions",
)
async def sweep_expired(service: Booking, staff: CurrentStaff) -> SweepResponse:
    return await service.sweep()


@router.get(
    "/{reservation_id}",
    response_model=Reservation,
    operation_id="getReservation",
    summary="Get a reservation",
)
async def get_reservation(
    reservation_id: int, service: Booking, staff: CurrentStaff
) -> Reservation:
    return await service.get_reservation(reservation_id)


@router.patch(
    "/{reservation_id}/status",
    response_model=Reservation,
    operation_id="changeReservationStatus",
    summary="Confirm or cancel a reservation",
)
async def change_status(
    reservation_id: int, body: StatusChange, service: Booking, staff: CurrentStaff
) -> Reservation:
    return await service.change_status(reservation_id, body.status)


@router.post(
    "/{reservation_id}/expire",
    response_model=Reservation,
    operation_id="expireReservation",
    summary="Cancel the reservation if its confirmation window has closed",
)
async def expire_reservation(
    reservation_id: int, service: Booking, staff: CurrentStaff
) -> Reservation:
    return await service.expire_if_overdue(reservation_id)
