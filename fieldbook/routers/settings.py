"""
Global settings: the night-rate start time.
"""

from fastapi import APIRouter

from fieldbook.dependencies import Booking, CurrentStaff
from fieldbook.models import NightStartSetting

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get(
    "/night-start",
    response_model=NightStartSetting,
    operation_id="getNightStart",
    summary="Time of day from which night prices apply",
)
async def get_night_start(service: Booking) -> NightStartSetting:
    config = await service.pricing_config()
    return NightStartSetting(night_start=config.night_start)


@router.put(
    "/night-start",
    response_model=NightStartSetting,
    operation_id="setNightStart",
    summary="Change the night-rate start time",
)
async def set_night_start(
    body: NightStartSetting, service: Booking, staff: CurrentStaff
) -> NightStartSetting:
    config = await service.set_night_start(body.night_start)
    return NightStartSetting(night_start=config.night_start)
