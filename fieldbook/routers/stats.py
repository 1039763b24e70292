"""
Reservation statistics (staff only).
"""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from fieldbook.dependencies import Booking, CurrentStaff
from fieldbook.models import StatsResponse

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get(
    "",
    response_model=StatsResponse,
    operation_id="getStats",
    summary="Reservation count and revenue per sport",
)
async def get_stats(
    service: Booking,
    staff: CurrentStaff,
    date_from: date = Query(...),
    date_to: date = Query(...),
) -> StatsResponse:
    if date_to < date_from:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_to must not be before date_from",
        )
    return await service.stats(date_from, date_to)
