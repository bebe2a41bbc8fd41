"""Stripe payment gateway adapter."""

import logging

import stripe

from growshare.config import settings
from growshare.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)

# Refund states Stripe reports for a refund it has accepted.
ACCEPTED_REFUND_STATUSES = ("succeeded", "pending")


class StripeGateway(PaymentGateway):
    """Stripe payment gateway implementation."""

    def __init__(self):
        self.secret_key = settings.stripe_secret_key
        self.webhook_secret = settings.stripe_webhook_secret

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

    async def create_payment(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        description: str,
        metadata: dict | None = None,
        customer_id: str | None = None,
        destination_account: str | None = None,
        application_fee: int | None = None,
    ) -> PaymentResult:
        """Create Stripe PaymentIntent, routed to the owner's Connect account when given."""
        if not self.secret_key:
            return PaymentResult(
                success=False,
                error_message="Stripe not configured",
            )

        params: dict = {
            "amount": amount,
            "currency": currency.lower(),
            "description": description,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {"reference_id": reference_id, **(metadata or {})},
        }
        if customer_id:
            params["customer"] = customer_id
        if destination_account:
            params["transfer_data"] = {"destination": destination_account}
            if application_fee:
                params["application_fee_amount"] = application_fee

        try:
            stripe.api_key = self.secret_key
            intent = stripe.PaymentIntent.create(**params)

            return PaymentResult(
                success=True,
                transaction_id=intent.id,
                client_secret=intent.client_secret,
                raw_response={"id": intent.id, "status": intent.status},
            )

        except stripe.StripeError as e:
            logger.warning(f"Stripe PaymentIntent creation failed for {reference_id}: {e}")
            return PaymentResult(
                success=False,
                error_message=str(e),
            )

    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Process Stripe refund.

        Keyed on the payment intent so Stripe issues at most one refund per intent.
        """
        if not self.secret_key:
            return RefundResult(
                success=False,
                error_message="Stripe not configured",
            )

        try:
            stripe.api_key = self.secret_key
            refund = stripe.Refund.create(
                payment_intent=transaction_id,
                amount=amount,
                reason="requested_by_customer",
                metadata={"reason": reason[:500]},
                idempotency_key=f"refund-{transaction_id}",
            )

            return RefundResult(
                success=refund.status in ACCEPTED_REFUND_STATUSES,
                refund_id=refund.id,
                error_message=None if refund.status in ACCEPTED_REFUND_STATUSES else refund.status,
                raw_response={"status": refund.status, "id": refund.id},
            )

        except stripe.StripeError as e:
            return RefundResult(
                success=False,
                error_message=str(e),
            )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify Stripe webhook signature."""
        if not self.webhook_secret:
            return None

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
            )
            return event.to_dict() if hasattr(event, "to_dict") else dict(event)

        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe webhook verification failed: {e}")
            return None
