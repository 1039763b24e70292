"""
Field catalogue plus the per-field slot, availability, price and
planning endpoints.
"""

from datetime import date

from fastapi import APIRouter, Query, status

from fieldbook.dependencies import Booking, CurrentStaff
from fieldbook.models import (
    TIME_PATTERN,
    AvailabilityResponse,
    PlanningResponse,
    PriceQuote,
    SlotListResponse,
    Sport,
    Terrain,
    TerrainCreate,
)

router = APIRouter(prefix="/api/fields", tags=["fields"])


# ── Catalogue ─────────────────────────────────────────────────────────────


@router.get(
    "",
    response_model=list[Terrain],
    operation_id="listFields",
    summary="List bookable fields",
)
async def list_fields(
    service: Booking,
    sport: Sport | None = Query(None, description="Only fields of this sport"),
) -> list[Terrain]:
    return await service.list_fields(sport=sport.value if sport else None)


@router.get(
    "/all",
    response_model=list[Terrain],
    operation_id="listAllFields",
    summary="List every field, including inactive ones",
)
async def list_all_fields(service: Booking, staff: CurrentStaff) -> list[Terrain]:
    return await service.list_fields(include_inactive=True)


@router.post(
    "",
    response_model=Terrain,
    status_code=status.HTTP_201_CREATED,
    operation_id="createField",
    summary="Create a field",
)
async def create_field(body: TerrainCreate, service: Booking, staff: CurrentStaff) -> Terrain:
    return await service.create_field(body)


@router.get(
    "/{field_id}",
    response_model=Terrain,
    operation_id="getField",
    summary="Get a field",
)
async def get_field(field_id: int, service: Booking) -> Terrain:
    return await service.get_field(field_id)


@router.put(
    "/{field_id}",
    response_model=Terrain,
    operation_id="updateField",
    summary="Replace a field's settings",
)
async def update_field(
    field_id: int, body: TerrainCreate, service: Booking, staff: CurrentStaff
) -> Terrain:
    return await service.update_field(field_id, body)


# ── Slots & prices ────────────────────────────────────────────────────────


@router.get(
    "/{field_id}/slots",
    response_model=SlotListResponse,
    operation_id="listSlots",
    summary="Bookable start times with availability and price",
)
async def list_slots(
    field_id: int,
    service: Booking,
    on: date = Query(..., alias="date", description="Day to list (YYYY-MM-DD)"),
    duration: float | None = Query(None, gt=0, description="Hours; ignored for football"),
) -> SlotListResponse:
    return await service.slot_board(field_id, on, duration)


@router.get(
    "/{field_id}/availability",
    response_model=AvailabilityResponse,
    operation_id="checkAvailability",
    summary="Check whether one slot is free",
)
async def check_availability(
    field_id: int,
    service: Booking,
    on: date = Query(..., alias="date"),
    start: str = Query(..., pattern=TIME_PATTERN, examples=["20:00"]),
    duration: float | None = Query(None, gt=0),
) -> AvailabilityResponse:
    return await service.check_availability(field_id, on, start, duration)


@router.get(
    "/{field_id}/price",
    response_model=PriceQuote,
    operation_id="quotePrice",
    summary="Price of a booking starting at the given time",
)
async def quote_price(
    field_id: int,
    service: Booking,
    start: str = Query(..., pattern=TIME_PATTERN),
    duration: float | None = Query(None, gt=0),
) -> PriceQuote:
    return await service.quote_price(field_id, start, duration)


@router.get(
    "/{field_id}/planning",
    response_model=PlanningResponse,
    operation_id="getPlanning",
    summary="Occupancy grid for consecutive days",
)
async def get_planning(
    field_id: int,
    service: Booking,
    staff: CurrentStaff,
    start: date = Query(..., description="First day of the grid"),
    days: int = Query(7, ge=1, le=31),
) -> PlanningResponse:
    return await service.planning(field_id, start, days)
