"""Webhook endpoints for payment gateways."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Header, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from growshare.api.deps import DbSession
from growshare.core.exceptions import InvalidPaymentTransition, ValidationError
from growshare.domain.payment_state import PaymentIntentStatus, assert_payment_transition
from growshare.gateways.base import GatewayType
from growshare.models.booking import Booking
from growshare.models.payment import PaymentIntent
from growshare.models.plot import Plot
from growshare.models.user import User
from growshare.services.gateway_service import gateway_service
from growshare.services.notification_service import notification_service
from growshare.services.side_effects import run_side_effect

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe", status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    db: DbSession,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> dict:
    """Handle Stripe webhook events."""
    payload = await request.body()
    event = gateway_service.verify_webhook(
        payload, stripe_signature or "", gateway_type=GatewayType.STRIPE
    )
    if event is None:
        raise ValidationError("Invalid webhook signature")

    await _handle_stripe_event(db, event)
    await db.commit()

    return {"received": True}


async def _handle_stripe_event(db: AsyncSession, event: dict[str, Any]) -> None:
    """Process Stripe event and update payment/booking/account state."""
    event_type = event.get("type")
    data = event.get("data", {}).get("object", {})

    if event_type == "payment_intent.succeeded":
        await _handle_payment_succeeded(db, data)
    elif event_type == "payment_intent.payment_failed":
        await _handle_payment_failed(db, data)
    elif event_type == "payment_intent.canceled":
        await _handle_payment_canceled(db, data)
    elif event_type == "account.updated":
        await _handle_account_updated(db, data)
    else:
        logger.debug(f"Ignoring Stripe event {event_type}")


async def _get_intent(db: AsyncSession, data: dict[str, Any]) -> PaymentIntent | None:
    result = await db.execute(
        select(PaymentIntent)
        .options(
            selectinload(PaymentIntent.booking)
            .selectinload(Booking.plot)
            .selectinload(Plot.owner)
        )
        .where(PaymentIntent.stripe_payment_intent_id == data.get("id"))
    )
    intent = result.scalar_one_or_none()
    if not intent:
        logger.warning(f"Stripe webhook references unknown payment intent {data.get('id')}")
    return intent


def _transition(intent: PaymentIntent, target: PaymentIntentStatus) -> bool:
    """Validate a webhook-driven transition; stale or replayed events are skipped."""
    try:
        assert_payment_transition(intent.status, target)
    except InvalidPaymentTransition as e:
        logger.info(f"Skipping webhook for payment intent {intent.stripe_payment_intent_id}: {e.detail}")
        return False
    intent.status = target.value
    return True


async def _handle_payment_succeeded(db: AsyncSession, data: dict[str, Any]) -> None:
    """Record the captured payment on the intent and its booking."""
    intent = await _get_intent(db, data)
    if not intent or not _transition(intent, PaymentIntentStatus.SUCCEEDED):
        return

    now = datetime.now(UTC)
    intent.completed_at = now
    intent.failure_message = None

    booking = intent.booking
    if not booking:
        return

    # The booking keeps its status; being paid is what makes it refundable.
    booking.paid_at = now
    booking.stripe_payment_id = intent.stripe_payment_intent_id
    await db.flush()

    await run_side_effect(
        db,
        f"payment received notification for booking {booking.id}",
        lambda: notification_service.notify_payment_received(
            db,
            owner_id=booking.plot.owner_id,
            plot_title=booking.plot.title,
            booking_id=booking.id,
            amount=intent.amount,
        ),
    )


async def _handle_payment_failed(db: AsyncSession, data: dict[str, Any]) -> None:
    intent = await _get_intent(db, data)
    if not intent or not _transition(intent, PaymentIntentStatus.FAILED):
        return

    error = data.get("last_payment_error") or {}
    intent.failure_message = error.get("message") or "Payment failed"


async def _handle_payment_canceled(db: AsyncSession, data: dict[str, Any]) -> None:
    intent = await _get_intent(db, data)
    if intent:
        _transition(intent, PaymentIntentStatus.CANCELLED)


async def _handle_account_updated(db: AsyncSession, data: dict[str, Any]) -> None:
    """Track whether a plot owner's Connect account can receive payouts."""
    result = await db.execute(select(User).where(User.stripe_connect_id == data.get("id")))
    user = result.scalar_one_or_none()
    if not user:
        logger.warning(f"Stripe webhook references unknown Connect account {data.get('id')}")
        return

    user.stripe_onboarding_complete = bool(data.get("charges_enabled")) and bool(
        data.get("payouts_enabled")
    )
