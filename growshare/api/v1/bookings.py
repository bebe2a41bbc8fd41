"""Booking endpoints."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from growshare.api.deps import CurrentUser, DbSession
from growshare.models.booking import Booking
from growshare.schemas.booking import (
    BookingCreate,
    BookingListParams,
    BookingListResponse,
    BookingResponse,
)
from growshare.services import booking_service

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> Booking:
    """Request a booking for a plot."""
    return await booking_service.create_booking(db, booking_data, current_user)


@router.get("", response_model=BookingListResponse)
async def get_my_bookings(
    params: Annotated[BookingListParams, Query()],
    current_user: CurrentUser,
    db: DbSession,
) -> BookingListResponse:
    """Get bookings the current user rents or receives as a plot owner."""
    bookings, total = await booking_service.list_bookings(db, current_user, params)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=params.page,
        page_size=params.page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> Booking:
    """Get a booking. Only the plot owner and the renter may view it."""
    return await booking_service.get_booking_for_party(db, booking_id, current_user)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    payload: Annotated[Any, Body()] = None,
) -> Booking:
    """Approve, reject or cancel a booking.

    The body is read as raw JSON so a missing body, a non-object body or a
    missing ``status`` all get the same 400 from the booking state machine.
    """
    requested = payload.get("status") if isinstance(payload, dict) else None
    return await booking_service.update_booking_status(db, booking_id, requested, current_user)
