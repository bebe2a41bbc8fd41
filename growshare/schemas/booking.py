"""Booking-related Pydantic schemas."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from growshare.domain.booking_state import BookingStatus
from growshare.schemas.payment import PaymentIntentSummary


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class BookingCreate(BaseModel):
    """Schema for requesting a booking."""

    plot_id: UUID
    start_date: datetime
    end_date: datetime
    message: str | None = Field(None, max_length=2000)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return _to_utc(v)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: datetime, info) -> datetime:
        start_date = info.data.get("start_date")
        if start_date and v <= start_date:
            raise ValueError("end_date must be after start_date")
        return v


class BookingRole(str, Enum):
    """Which side of a booking to list."""

    RENTER = "renter"
    OWNER = "owner"


class BookingListParams(BaseModel):
    """Options for listing bookings. Absent filters are None."""

    role: BookingRole = BookingRole.RENTER
    status: BookingStatus | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class UserSummary(BaseModel):
    """Public contact details of a booking party."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    email: str
    avatar_url: str | None = None


class PlotSummary(BaseModel):
    """Plot fields shown alongside a booking."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    city: str | None = None
    state: str | None = None
    images: list[str] = Field(default_factory=list)
    price_per_month: int
    owner_id: UUID
    owner: UserSummary

    @field_validator("images", mode="before")
    @classmethod
    def default_images(cls, v: list[str] | None) -> list[str]:
        return v or []


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plot_id: UUID
    renter_id: UUID
    start_date: datetime
    end_date: datetime
    status: BookingStatus
    monthly_rate: int
    total_amount: int
    security_deposit: int | None = None
    message: str | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    plot: PlotSummary
    renter: UserSummary
    payment_intent: PaymentIntentSummary | None = None


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int
