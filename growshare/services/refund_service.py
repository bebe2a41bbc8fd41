"""Refunds for cancelled bookings.

Applies the cancellation policy to a booking's captured payment, asks the
gateway for a partial refund and records the outcome on the payment intent.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from growshare.core.exceptions import ExternalServiceError, InvalidPaymentTransition
from growshare.domain.cancellation_policy import (
    calculate_refund_amount,
    days_until_start,
    refund_percentage_for_days,
)
from growshare.domain.payment_state import PaymentIntentStatus, assert_payment_transition
from growshare.models.booking import Booking
from growshare.models.payment import PaymentIntent
from growshare.services.gateway_service import gateway_service
from growshare.services.notification_service import notification_service
from growshare.services.side_effects import run_side_effect

logger = logging.getLogger(__name__)


@dataclass
class RefundInfo:
    """A refund the gateway accepted. Amount is in cents."""

    refund_id: str
    refund_amount: int
    refund_percentage: int


@dataclass
class RefundQuote:
    """What cancelling now would refund."""

    eligible: bool
    refund_percentage: int
    refund_amount: int
    original_amount: int
    days_until_start: int
    reason: str | None = None


def is_refundable(booking: Booking) -> bool:
    """A booking can be refunded once paid through a succeeded intent."""
    intent = booking.payment_intent
    return (
        booking.paid_at is not None
        and intent is not None
        and intent.status == PaymentIntentStatus.SUCCEEDED.value
    )


def quote_refund(booking: Booking, now: datetime | None = None) -> RefundQuote:
    """Price a cancellation at ``now`` without touching the gateway."""
    intent = booking.payment_intent
    original_amount = intent.amount if intent else 0
    days = days_until_start(booking.start_date, now)
    percentage = refund_percentage_for_days(days)

    reason = None
    if booking.paid_at is None or intent is None:
        reason = "This booking has not been paid and cannot be refunded"
    elif intent.status == PaymentIntentStatus.REFUNDED.value:
        reason = "This booking has already been refunded"
    elif intent.status != PaymentIntentStatus.SUCCEEDED.value:
        reason = "Only successful payments can be refunded"
    elif percentage == 0:
        reason = "No refund available - cancellation is less than 3 days before start date"

    return RefundQuote(
        eligible=reason is None,
        refund_percentage=percentage,
        refund_amount=calculate_refund_amount(original_amount, percentage),
        original_amount=original_amount,
        days_until_start=days,
        reason=reason,
    )


async def _mark_refunded(db: AsyncSession, intent: PaymentIntent, refund_fields: dict) -> bool:
    """Move the intent from SUCCEEDED to REFUNDED unless another request already did."""
    result = await db.execute(
        update(PaymentIntent)
        .where(
            PaymentIntent.id == intent.id,
            PaymentIntent.status == PaymentIntentStatus.SUCCEEDED.value,
        )
        .values(
            status=PaymentIntentStatus.REFUNDED.value,
            metadata_={**(intent.metadata_ or {}), **refund_fields},
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def issue_refund(
    db: AsyncSession,
    booking: Booking,
    quote: RefundQuote,
    reason: str,
) -> RefundInfo:
    """Refund ``quote.refund_amount`` against the booking's payment intent.

    The REFUNDED status is committed as soon as the gateway accepts the
    refund, so later failures in the same request cannot lose it.

    Raises:
        InvalidPaymentTransition: If the intent is no longer SUCCEEDED
        ExternalServiceError: If the gateway does not accept the refund
    """
    intent = booking.payment_intent
    assert_payment_transition(intent.status, PaymentIntentStatus.REFUNDED)

    result = await gateway_service.process_refund(
        transaction_id=intent.stripe_payment_intent_id,
        amount=quote.refund_amount,
        reason=reason,
        gateway_type=intent.gateway,
    )
    if not result.success:
        raise ExternalServiceError("payment gateway", result.error_message)

    refunded_at = datetime.now(UTC)
    marked = await _mark_refunded(
        db,
        intent,
        {
            "refundId": result.refund_id,
            "refundAmount": quote.refund_amount,
            "refundPercentage": quote.refund_percentage,
            "refundedAt": refunded_at.isoformat(),
        },
    )
    if not marked:
        logger.warning(
            f"Refund {result.refund_id} for booking {booking.id} not recorded: "
            f"payment intent {intent.stripe_payment_intent_id} was refunded by another request"
        )
        raise InvalidPaymentTransition("This booking has already been refunded")

    await db.commit()
    await db.refresh(intent)

    logger.info(
        f"Refunded {quote.refund_amount} ({quote.refund_percentage}%) for booking {booking.id}, "
        f"refund {result.refund_id}"
    )

    refund = RefundInfo(
        refund_id=result.refund_id,
        refund_amount=quote.refund_amount,
        refund_percentage=quote.refund_percentage,
    )
    await run_side_effect(
        db,
        f"refund notification for booking {booking.id}",
        lambda: notification_service.notify_refund_processed(
            db,
            renter_id=booking.renter_id,
            plot_title=booking.plot.title,
            booking_id=booking.id,
            refund_amount=refund.refund_amount,
            refund_percentage=refund.refund_percentage,
        ),
    )
    return refund


async def refund_cancelled_booking(
    db: AsyncSession,
    booking: Booking,
    now: datetime | None = None,
) -> RefundInfo | None:
    """Refund a just-cancelled booking according to the cancellation policy.

    Never raises: a gateway failure is logged for manual reconciliation and
    the cancellation stands.
    """
    if not is_refundable(booking):
        return None

    quote = quote_refund(booking, now)
    if quote.refund_percentage == 0:
        logger.info(
            f"No refund for booking {booking.id}: cancelled {quote.days_until_start} days before start"
        )
        return None

    try:
        return await issue_refund(db, booking, quote, reason="Booking cancelled")
    except Exception:
        logger.exception(
            f"Refund failed for cancelled booking {booking.id}: payment intent "
            f"{booking.payment_intent.stripe_payment_intent_id}, amount {quote.refund_amount}. "
            "Manual reconciliation required."
        )
        return None
