"""Pydantic models for the Fieldbook booking API."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, EmailStr, Field, model_validator

TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"

TimeOfDay = Annotated[
    str,
    Field(pattern=TIME_PATTERN, description="Local time of day (HH:MM)", examples=["19:00"]),
]


# ── Enumerations ──────────────────────────────────────────────────────────


class Sport(str, Enum):
    FOOTBALL = "football"
    TENNIS = "tennis"
    PADEL = "padel"


class FootballFormat(str, Enum):
    """Player-count variant of a football pitch; drives its opening hours."""

    SIX_A_SIDE = "six_a_side"
    SEVEN_OR_EIGHT_A_SIDE = "seven_or_eight_a_side"
    STANDARD = "standard"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ReservationView(str, Enum):
    UPCOMING = "upcoming"
    CURRENT = "current"
    ALL = "all"


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


# ── Fields (terrains) ─────────────────────────────────────────────────────


class TerrainBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=80, description="Display name")
    capacity: int = Field(..., ge=1, description="Number of players")
    day_price: float = Field(..., ge=0, description="Price per hour (per session for football)")
    night_price: float | None = Field(None, ge=0, description="Price after the night-start time")
    image_url: str | None = Field(None, description="Picture shown on the booking page")
    active: bool = Field(default=True, description="Inactive fields cannot be booked")


class Terrain(TerrainBase):
    """A bookable field.  `sport` stays a plain string so legacy rows load."""

    id: int
    sport: str = Field(..., description="football, tennis or padel")
    football_format: FootballFormat | None = Field(
        None, description="Player-count variant, football only"
    )
    created_at: datetime | None = None


class TerrainCreate(TerrainBase):
    sport: Sport
    football_format: FootballFormat | None = Field(
        None, description="Inferred from the name when omitted for football fields"
    )


# ── Reservations ──────────────────────────────────────────────────────────


class Reservation(BaseModel):
    id: int | None = None
    customer_name: str
    phone: str
    email: str
    field_id: int
    date: date
    start_time: TimeOfDay
    duration: float = Field(..., gt=0, description="Hours, may be fractional")
    status: ReservationStatus = ReservationStatus.PENDING
    subscription_id: int | None = Field(
        None, description="Set when generated from a subscription"
    )
    confirmation_token: str | None = None
    price: float | None = Field(None, ge=0)
    note: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReservationRequest(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=40)
    phone: str = Field(..., min_length=8, max_length=20)
    email: EmailStr
    field_id: int
    date: date
    start_time: TimeOfDay
    duration: float | None = Field(
        None, gt=0, description="Hours; ignored for football (always 1.5)"
    )
    note: str | None = Field(None, max_length=500)
    device_fingerprint: str | None = Field(None, max_length=128)


class StaffReservationRequest(ReservationRequest):
    status: Literal[ReservationStatus.PENDING, ReservationStatus.CONFIRMED] = (
        ReservationStatus.CONFIRMED
    )


class StatusChange(BaseModel):
    status: ReservationStatus


class ReservationListResponse(BaseModel):
    items: list[Reservation]
    meta: PaginationMeta


class ConfirmationResponse(BaseModel):
    message: str
    reservation: Reservation


# ── Availability, slots and prices ────────────────────────────────────────


class AvailabilityResponse(BaseModel):
    field_id: int
    date: date
    start_time: str
    duration: float
    available: bool
    reason: str | None = None
    blocked_by: str | None = Field(
        None, description="reservation, subscription or alignment"
    )


class SlotInfo(BaseModel):
    start_time: str
    end_time: str
    available: bool
    reason: str | None = None
    price: float


class SlotListResponse(BaseModel):
    field_id: int
    date: date
    duration: float
    slots: list[SlotInfo]


class PriceQuote(BaseModel):
    field_id: int
    start_time: str
    requested_duration: float | None
    duration: float
    night_start: str
    price: float


class NightStartSetting(BaseModel):
    night_start: TimeOfDay


# ── Subscriptions (abonnements) ───────────────────────────────────────────


class SubscriptionBase(BaseModel):
    field_id: int
    weekday: int = Field(..., ge=0, le=6, description="0=Monday … 6=Sunday")
    start_time: TimeOfDay
    duration: float = Field(..., gt=0)
    date_start: date | None = None
    date_end: date | None = None
    month: int | None = Field(None, ge=1, le=12)
    year: int | None = Field(None, ge=2000, le=2100)
    customer_name: str = Field(..., min_length=1, max_length=40)
    phone: str = Field(..., min_length=8, max_length=20)
    email: str
    amount: float | None = Field(None, ge=0)


class Subscription(SubscriptionBase):
    id: int
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime
    updated_at: datetime | None = None


class SubscriptionCreate(SubscriptionBase):
    email: EmailStr
    materialize: bool = Field(
        default=True, description="Generate one confirmed reservation per occurrence"
    )

    @model_validator(mode="after")
    def _check_window(self) -> "SubscriptionCreate":
        has_dates = self.date_start is not None and self.date_end is not None
        has_month = self.month is not None and self.year is not None
        if has_dates == has_month:
            raise ValueError("Give either date_start/date_end or month/year")
        if has_dates and self.date_end < self.date_start:
            raise ValueError("date_end must not be before date_start")
        return self


class SubscriptionCreated(BaseModel):
    subscription: Subscription
    materialized: int
    skipped_dates: list[date]


class SubscriptionStatusChange(BaseModel):
    status: SubscriptionStatus


# ── Blacklist ─────────────────────────────────────────────────────────────


class BlacklistEntryCreate(BaseModel):
    kind: Literal["phone", "email"]
    value: str = Field(..., min_length=3, max_length=120)
    reason: str | None = Field(None, max_length=200)


class BlacklistEntry(BlacklistEntryCreate):
    id: int
    created_at: datetime


# ── Planning & statistics ─────────────────────────────────────────────────


class PlanningCell(BaseModel):
    time: str
    state: Literal["free", "reservation", "subscription"]
    reservation_id: int | None = None
    subscription_id: int | None = None
    customer_name: str | None = None
    first: bool = Field(default=False, description="First cell of the occupying booking")
    span: int = Field(default=1, description="Cells covered when `first` is set")


class PlanningDay(BaseModel):
    date: date
    cells: list[PlanningCell]


class PlanningResponse(BaseModel):
    field_id: int
    days: list[PlanningDay]


class SportStats(BaseModel):
    sport: str
    reservations: int
    revenue: float


class StatsResponse(BaseModel):
    date_from: date
    date_to: date
    total_reservations: int
    total_revenue: float
    average_revenue: float
    by_sport: list[SportStats]


# ── Misc ──────────────────────────────────────────────────────────────────


class SweepResponse(BaseModel):
    cancelled_reservations: int
    expired_subscriptions: int


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class MessageResponse(BaseModel):
    message: str


class StaffInfo(BaseModel):
    email: str
    issued_at: datetime

