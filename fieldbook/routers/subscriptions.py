"""
Weekly subscription endpoints (staff only).
"""

from fastapi import APIRouter, Query, Response, status

from fieldbook.dependencies import Booking, CurrentStaff
from fieldbook.models import (
    Subscription,
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionStatus,
    SubscriptionStatusChange,
)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get(
    "",
    response_model=list[Subscription],
    operation_id="listSubscriptions",
    summary="List subscriptions",
)
async def list_subscriptions(
    service: Booking,
    staff: CurrentStaff,
    field_id: int | None = Query(None),
    sub_status: SubscriptionStatus | None = Query(None, alias="status"),
) -> list[Subscription]:
    return await service.list_subscriptions(field_id=field_id, status=sub_status)


@router.post(
    "",
    response_model=SubscriptionCreated,
    status_code=status.HTTP_201_CREATED,
    operation_id="createSubscription",
    summary="Create a weekly subscription and book its occurrences",
)
async def create_subscription(
    body: SubscriptionCreate, service: Booking, staff: CurrentStaff
) -> SubscriptionCreated:
    return await service.create_subscription(body)


@router.get(
    "/{sub_id}",
    response_model=Subscription,
    operation_id="getSubscription",
    summary="Get a subscription",
)
async def get_subscription(sub_id: int, service: Booking, staff: CurrentStaff) -> Subscription:
    return await service.get_subscription(sub_id)


@router.patch(
    "/{sub_id}/status",
    response_model=Subscription,
    operation_id="changeSubscriptionStatus",
    summary="Activate, expire or cancel a subscription",
)
async def change_subscription_status(
    sub_id: int, body: SubscriptionStatusChange, service: Booking, staff: CurrentStaff
) -> Subscription:
    return await service.change_subscription_status(sub_id, body.status)


@router.delete(
    "/{sub_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteSubscription",
    summary="Delete a subscription",
)
async def delete_subscription(sub_id: int, service: Booking, staff: CurrentStaff) -> Response:
    await service.delete_subscription(sub_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
