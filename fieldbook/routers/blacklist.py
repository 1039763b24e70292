"""
Blacklist management (staff only).

Values are stored normalized so lookups from the booking gate match
regardless of spacing, case or the +216 prefix.
"""

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, HTTPException, Response, status

from fieldbook import db
from fieldbook.dependencies import Booking, CurrentStaff
from fieldbook.errors import HTTP_422_UNPROCESSABLE
from fieldbook.models import BlacklistEntry, BlacklistEntryCreate
from fieldbook.services.gate import LOCAL_PHONE_DIGITS, normalize

router = APIRouter(prefix="/api/blacklist", tags=["blacklist"])


def _validated_value(body: BlacklistEntryCreate) -> str:
    value = normalize(body.kind, body.value)
    if body.kind == "phone" and not (value.isdigit() and len(value) == LOCAL_PHONE_DIGITS):
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail=f"Phone numbers must have {LOCAL_PHONE_DIGITS} local digits",
        )
    if body.kind == "email":
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as exc:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail=f"Invalid email address: {exc}",
            ) from None
    return value


@router.get(
    "",
    response_model=list[BlacklistEntry],
    operation_id="listBlacklist",
    summary="List blocked phone numbers and emails",
)
async def list_blacklist(staff: CurrentStaff) -> list[BlacklistEntry]:
    return await db.list_blacklist()


@router.post(
    "",
    response_model=BlacklistEntry,
    status_code=status.HTTP_201_CREATED,
    operation_id="addBlacklistEntry",
    summary="Block a phone number or email",
)
async def add_blacklist_entry(
    body: BlacklistEntryCreate, service: Booking, staff: CurrentStaff
) -> BlacklistEntry:
    value = _validated_value(body)
    return await db.add_blacklist_entry(body.kind, value, body.reason, service.clock.now())


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteBlacklistEntry",
    summary="Unblock an entry",
)
async def delete_blacklist_entry(entry_id: int, staff: CurrentStaff) -> Response:
    if not await db.delete_blacklist_entry(entry_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blacklist entry {entry_id} not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
