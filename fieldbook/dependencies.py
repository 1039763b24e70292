import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, Query, status

from fieldbook.config import JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET
from fieldbook.models import PaginationMeta, StaffInfo
from fieldbook.services.booking import BookingService
from fieldbook.services.email import EmailDispatcher
from fieldbook.services.gate import BlacklistGate

logger = logging.getLogger(__name__)


# ── Booking service ────────────────────────────────────────────────────────

_service: BookingService | None = None


def get_booking_service() -> BookingService:
    global _service
    if _service is None:
        _service = BookingService(gate=BlacklistGate(), dispatcher=EmailDispatcher())
    return _service


Booking = Annotated[BookingService, Depends(get_booking_service)]


# ── Pagination ─────────────────────────────────────────────────────────────


class PaginationParams:
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
        page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def paginate(items: list, pagination: PaginationParams, response_cls: type):
    total = len(items)
    start = pagination.offset
    end = start + pagination.page_size
    return response_cls(
        items=items[start:end],
        meta=PaginationMeta(
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total,
            total_pages=max(1, -(-total // pagination.page_size)),
        ),
    )


# ── Staff JWT ──────────────────────────────────────────────────────────────
# Tokens are issued by the staff back office; this service only verifies them.


def create_jwt(email: str, *, expires_in: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": email,
        "role": "staff",
        "iat": now,
        "exp": now + (expires_in or timedelta(days=JWT_EXPIRY_DAYS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_current_staff(
    authorization: Annotated[str | None, Header()] = None,
    session: Annotated[str | None, Cookie()] = None,
) -> StaffInfo:
    token = _bearer_token(authorization) or session
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff authentication required.",
        )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        ) from None
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        ) from None

    email: str | None = payload.get("sub")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        )
    if payload.get("role") != "staff":
        logger.info("Rejected non-staff token for %s", email)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff role required.",
        )

    return StaffInfo(
        email=email,
        issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
    )


CurrentStaff = Annotated[StaffInfo, Depends(get_current_staff)]
