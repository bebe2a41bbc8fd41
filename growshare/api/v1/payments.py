"""Payment endpoints."""

import logging
from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from growshare.api.deps import CurrentUser, DbSession
from growshare.config import settings
from growshare.core.exceptions import AuthorizationError, ExternalServiceError, ValidationError
from growshare.core.middleware import refund_limiter
from growshare.domain.booking_access import resolve_party
from growshare.domain.booking_state import BookingStatus
from growshare.domain.cancellation_policy import POLICY_SUMMARY
from growshare.domain.payment_state import PaymentIntentStatus, assert_payment_transition
from growshare.models.payment import PaymentIntent
from growshare.schemas.payment import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    PaymentIntentSummary,
    RefundEligibilityResponse,
    RefundRequest,
    RefundResponse,
)
from growshare.services.booking_service import load_booking
from growshare.services.gateway_service import gateway_service
from growshare.services.refund_service import is_refundable, issue_refund, quote_refund

logger = logging.getLogger(__name__)

router = APIRouter()

PAID_STATUSES = (PaymentIntentStatus.SUCCEEDED.value, PaymentIntentStatus.REFUNDED.value)


@router.post("/create-intent", response_model=CreatePaymentIntentResponse)
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> CreatePaymentIntentResponse:
    """Start payment for an approved booking (renter only)."""
    booking = await load_booking(db, request.booking_id)

    if booking.renter_id != current_user.id:
        raise AuthorizationError("Only the renter can pay for this booking")
    if booking.status != BookingStatus.APPROVED.value:
        raise ValidationError("Booking must be approved before payment")

    intent = booking.payment_intent
    if intent and intent.status in PAID_STATUSES:
        raise ValidationError("This booking has already been paid")

    plot = booking.plot
    owner = plot.owner
    amount = booking.total_amount * 100
    platform_fee = round(amount * settings.platform_fee_percent / 100)

    result = await gateway_service.create_payment(
        amount=amount,
        currency=settings.currency,
        reference_id=str(booking.id),
        description=f"Booking for {plot.title}",
        metadata={
            "bookingId": str(booking.id),
            "plotId": str(plot.id),
            "renterId": str(current_user.id),
        },
        customer_id=current_user.stripe_customer_id,
        destination_account=owner.stripe_connect_id,
        application_fee=platform_fee if owner.stripe_connect_id else None,
    )
    if not result.success:
        raise ExternalServiceError("payment gateway", result.error_message)

    if intent is None:
        intent = PaymentIntent(
            booking_id=booking.id,
            user_id=current_user.id,
            gateway=gateway_service.default_gateway.value,
            stripe_payment_intent_id=result.transaction_id,
            amount=amount,
            currency=settings.currency,
            status=PaymentIntentStatus.PENDING.value,
            metadata_={"platformFee": platform_fee},
        )
        db.add(intent)
    else:
        # One intent per booking; a retry replaces the gateway reference.
        if intent.status in (PaymentIntentStatus.FAILED.value, PaymentIntentStatus.CANCELLED.value):
            assert_payment_transition(intent.status, PaymentIntentStatus.PENDING)
            intent.status = PaymentIntentStatus.PENDING.value
        intent.stripe_payment_intent_id = result.transaction_id
        intent.amount = amount
        intent.failure_message = None
        intent.merge_metadata({"platformFee": platform_fee})

    await db.commit()
    logger.info(f"Payment intent {result.transaction_id} created for booking {booking.id}")

    booking = await load_booking(db, booking.id)
    return CreatePaymentIntentResponse(
        client_secret=result.client_secret,
        payment_intent=PaymentIntentSummary.model_validate(booking.payment_intent),
    )


@router.get("/refund", response_model=RefundEligibilityResponse)
async def get_refund_eligibility(
    current_user: CurrentUser,
    db: DbSession,
    booking_id: UUID = Query(...),
) -> RefundEligibilityResponse:
    """Show what cancelling now would refund."""
    booking = await load_booking(db, booking_id)
    if resolve_party(current_user.id, booking.plot.owner_id, booking.renter_id) is None:
        raise AuthorizationError("You do not have permission to view this booking")

    quote = quote_refund(booking)
    return RefundEligibilityResponse(**asdict(quote), policy=POLICY_SUMMARY)


@router.post(
    "/refund",
    response_model=RefundResponse,
    dependencies=[Depends(refund_limiter)],
)
async def request_refund(
    request: RefundRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> RefundResponse:
    """Refund a paid booking according to the cancellation policy."""
    booking = await load_booking(db, request.booking_id)
    party = resolve_party(current_user.id, booking.plot.owner_id, booking.renter_id)
    if party is None:
        raise AuthorizationError("You do not have permission to process refunds for this booking")

    quote = quote_refund(booking)
    if not is_refundable(booking):
        raise ValidationError(quote.reason)

    if quote.refund_percentage == 0:
        return RefundResponse(success=False, message=quote.reason)

    refund = await issue_refund(db, booking, quote, reason=f"Refund requested by {party.value}")
    await db.commit()

    return RefundResponse(
        success=True,
        message=f"Refund of {refund.refund_percentage}% processed successfully",
        refund_id=refund.refund_id,
        refund_amount=refund.refund_amount,
        refund_percentage=refund.refund_percentage,
    )
