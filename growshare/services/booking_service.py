"""Booking workflow.

Creation, lookup and status changes for plot bookings. A status change runs
the access check, then the state machine, then a conditional write; refunds,
points, activity history and notifications follow once the new status is
committed.
"""

import logging
import math
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from growshare.core.exceptions import (
    InvalidBookingStatus,
    NotFoundError,
    PayoutSetupRequired,
    ValidationError,
)
from growshare.domain.booking_access import BookingParty, authorize_status_change, authorize_view
from growshare.domain.booking_state import (
    BLOCKING_STATUSES,
    BookingStatus,
    assert_booking_transition,
    parse_requested_status,
)
from growshare.models.booking import Booking
from growshare.models.plot import Plot
from growshare.models.user import User
from growshare.schemas.booking import BookingCreate, BookingListParams, BookingRole
from growshare.services import activity_service
from growshare.services.notification_service import notification_service
from growshare.services.refund_service import RefundInfo, refund_cancelled_booking
from growshare.services.side_effects import run_side_effect

logger = logging.getLogger(__name__)

DAYS_PER_BILLING_MONTH = 30


def _booking_options():
    return (
        selectinload(Booking.plot).selectinload(Plot.owner),
        selectinload(Booking.renter),
        selectinload(Booking.payment_intent),
    )


async def load_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    """Fetch a booking with its plot, owner, renter and payment intent.

    Always re-reads the row so callers see the committed state.
    """
    result = await db.execute(
        select(Booking)
        .options(*_booking_options())
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking")
    return booking


# ==================== CREATE ====================


def booking_months(start_date: datetime, end_date: datetime) -> int:
    """Billable months for a date range; a partial month counts in full."""
    days = (end_date - start_date).total_seconds() / 86400
    return max(1, math.ceil(days / DAYS_PER_BILLING_MONTH))


async def has_overlapping_booking(
    db: AsyncSession,
    plot_id: UUID,
    start_date: datetime,
    end_date: datetime,
) -> bool:
    """Whether any booking holding the plot intersects the closed range."""
    result = await db.execute(
        select(Booking.id)
        .where(
            Booking.plot_id == plot_id,
            Booking.status.in_([s.value for s in BLOCKING_STATUSES]),
            Booking.start_date <= end_date,
            Booking.end_date >= start_date,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_booking(db: AsyncSession, data: BookingCreate, renter: User) -> Booking:
    """Create a booking request (or an approved booking for instant-book plots)."""
    plot = (
        await db.execute(
            select(Plot).options(selectinload(Plot.owner)).where(Plot.id == data.plot_id)
        )
    ).scalar_one_or_none()
    if not plot or not plot.is_active:
        raise NotFoundError("Plot")

    if plot.owner_id == renter.id:
        raise ValidationError("You cannot book your own plot")

    if await has_overlapping_booking(db, plot.id, data.start_date, data.end_date):
        raise ValidationError("This plot is already booked for the selected dates")

    months = booking_months(data.start_date, data.end_date)
    status = BookingStatus.APPROVED if plot.instant_book else BookingStatus.PENDING

    booking = Booking(
        plot_id=plot.id,
        renter_id=renter.id,
        start_date=data.start_date,
        end_date=data.end_date,
        status=status.value,
        monthly_rate=plot.price_per_month,
        total_amount=plot.price_per_month * months,
        security_deposit=plot.security_deposit,
        message=data.message,
    )
    db.add(booking)
    await db.flush()

    await activity_service.award_points(db, renter.id, activity_service.BOOKING_CREATED_POINTS)
    await activity_service.record_activity(
        db,
        user_id=renter.id,
        activity_type=activity_service.BOOKING_CREATED,
        title="Booking confirmed" if plot.instant_book else "Booking requested",
        description=f"{plot.title} in {plot.city}, {plot.state}",
        points=activity_service.BOOKING_CREATED_POINTS,
        metadata={"bookingId": str(booking.id)},
    )

    if status is BookingStatus.PENDING:
        await run_side_effect(
            db,
            f"booking request notification for booking {booking.id}",
            lambda: notification_service.notify_booking_request(
                db,
                owner_id=plot.owner_id,
                plot_title=plot.title,
                renter_name=renter.full_name,
                booking_id=booking.id,
            ),
        )

    await db.commit()
    logger.info(f"Booking {booking.id} created for plot {plot.id} with status {status.value}")
    return await load_booking(db, booking.id)


# ==================== READ ====================


async def list_bookings(
    db: AsyncSession,
    user: User,
    params: BookingListParams,
) -> tuple[list[Booking], int]:
    """Bookings the user rents, or bookings on plots the user owns, newest first."""
    if params.role is BookingRole.OWNER:
        query = select(Booking).join(Plot, Booking.plot_id == Plot.id).where(Plot.owner_id == user.id)
    else:
        query = select(Booking).where(Booking.renter_id == user.id)

    if params.status is not None:
        query = query.where(Booking.status == params.status.value)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    offset = (params.page - 1) * params.page_size
    result = await db.execute(
        query.options(*_booking_options())
        .order_by(Booking.created_at.desc(), Booking.id)
        .offset(offset)
        .limit(params.page_size)
    )
    return list(result.scalars().all()), total


async def get_booking_for_party(db: AsyncSession, booking_id: UUID, user: User) -> Booking:
    booking = await load_booking(db, booking_id)
    authorize_view(user.id, booking.plot.owner_id, booking.renter_id)
    return booking


# ==================== STATUS CHANGES ====================


async def _compare_and_set_status(
    db: AsyncSession,
    booking: Booking,
    target: BookingStatus,
) -> None:
    """Move the booking to ``target`` only if its status is still the one we read."""
    expected = booking.status
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == expected)
        .values(status=target.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            f"Booking {booking.id} changed concurrently; {expected} -> {target.value} not applied"
        )
        raise InvalidBookingStatus(
            "This booking was updated by another request. Refresh and try again."
        )


async def update_booking_status(
    db: AsyncSession,
    booking_id: UUID,
    requested_status: object,
    user: User,
) -> Booking:
    """Approve, reject or cancel a booking on behalf of ``user``.

    The new status is committed before any side effect runs, and side-effect
    failures never undo it.
    """
    target = parse_requested_status(requested_status)
    booking = await load_booking(db, booking_id)

    party = authorize_status_change(user.id, booking.plot.owner_id, booking.renter_id, target)
    assert_booking_transition(booking.status, target)

    if target is BookingStatus.APPROVED and not booking.plot.owner.stripe_onboarding_complete:
        raise PayoutSetupRequired()

    await _compare_and_set_status(db, booking, target)
    await db.commit()
    logger.info(f"Booking {booking_id} moved to {target.value} by {party.value} {user.id}")

    booking = await load_booking(db, booking_id)

    if target is BookingStatus.APPROVED:
        await _on_approved(db, booking)
    elif target is BookingStatus.REJECTED:
        await _on_rejected(db, booking)
    else:
        await _on_cancelled(db, booking, party, user)

    await db.commit()
    return await load_booking(db, booking_id)


async def _on_approved(db: AsyncSession, booking: Booking) -> None:
    plot = booking.plot
    points = activity_service.BOOKING_APPROVED_POINTS

    async def reward_owner() -> None:
        await activity_service.award_points(db, plot.owner_id, points)
        await activity_service.record_activity(
            db,
            user_id=plot.owner_id,
            activity_type=activity_service.BOOKING_APPROVED,
            title="Booking approved",
            description=f"Approved booking for {plot.title}",
            points=points,
            metadata={"bookingId": str(booking.id)},
        )

    await run_side_effect(db, f"owner approval points for booking {booking.id}", reward_owner)
    await run_side_effect(
        db,
        f"renter confirmation activity for booking {booking.id}",
        lambda: activity_service.record_activity(
            db,
            user_id=booking.renter_id,
            activity_type=activity_service.BOOKING_APPROVED,
            title="Booking confirmed",
            description=f"Your booking for {plot.title} has been approved",
            metadata={"bookingId": str(booking.id)},
        ),
    )
    await run_side_effect(
        db,
        f"approval notification for booking {booking.id}",
        lambda: notification_service.notify_booking_approved(
            db,
            renter_id=booking.renter_id,
            plot_title=plot.title,
            booking_id=booking.id,
        ),
    )


async def _on_rejected(db: AsyncSession, booking: Booking) -> None:
    plot = booking.plot

    await run_side_effect(
        db,
        f"renter decline activity for booking {booking.id}",
        lambda: activity_service.record_activity(
            db,
            user_id=booking.renter_id,
            activity_type=activity_service.BOOKING_REJECTED,
            title="Booking declined",
            description=f"Your booking request for {plot.title} was declined",
            metadata={"bookingId": str(booking.id)},
        ),
    )
    await run_side_effect(
        db,
        f"rejection notification for booking {booking.id}",
        lambda: notification_service.notify_booking_rejected(
            db,
            renter_id=booking.renter_id,
            plot_title=plot.title,
            booking_id=booking.id,
        ),
    )


def _format_refund(refund: RefundInfo) -> str:
    return f"{refund.refund_percentage}% refund of ${refund.refund_amount / 100:.2f}"


async def _on_cancelled(
    db: AsyncSession,
    booking: Booking,
    party: BookingParty,
    canceller: User,
) -> None:
    plot = booking.plot
    refund = await refund_cancelled_booking(db, booking)

    if party is BookingParty.OWNER:
        other_party_id = booking.renter_id
        other_party_link = notification_service.RENTER_BOOKINGS_LINK
    else:
        other_party_id = plot.owner_id
        other_party_link = notification_service.OWNER_BOOKINGS_LINK

    metadata = {"bookingId": str(booking.id), "cancelledBy": party.value}
    if refund:
        metadata.update(
            refundId=refund.refund_id,
            refundAmount=refund.refund_amount,
            refundPercentage=refund.refund_percentage,
        )
        own_description = f"Cancelled booking for {plot.title} ({_format_refund(refund)})"
        other_description = (
            f"Booking for {plot.title} was cancelled; {_format_refund(refund)} processed"
        )
    else:
        own_description = f"Cancelled booking for {plot.title}"
        other_description = f"Booking for {plot.title} was cancelled"

    await run_side_effect(
        db,
        f"canceller activity for booking {booking.id}",
        lambda: activity_service.record_activity(
            db,
            user_id=canceller.id,
            activity_type=activity_service.BOOKING_CANCELLED,
            title="Booking cancelled",
            description=own_description,
            metadata=metadata,
        ),
    )
    await run_side_effect(
        db,
        f"other-party cancellation activity for booking {booking.id}",
        lambda: activity_service.record_activity(
            db,
            user_id=other_party_id,
            activity_type=activity_service.BOOKING_CANCELLED,
            title="Booking cancelled",
            description=other_description,
            metadata=metadata,
        ),
    )
    await run_side_effect(
        db,
        f"cancellation notification for booking {booking.id}",
        lambda: notification_service.notify_booking_cancelled(
            db,
            user_id=other_party_id,
            plot_title=plot.title,
            booking_id=booking.id,
            cancelled_by=canceller.full_name,
            link=other_party_link,
        ),
    )
