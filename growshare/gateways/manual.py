"""Manual payment gateway adapter for offline settlement."""

from growshare.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)


class ManualGateway(PaymentGateway):
    """Gateway for bookings settled outside the card network.

    Every operation is accepted and left for an operator to reconcile.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

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
        return PaymentResult(
            success=True,
            transaction_id=f"manual_{reference_id}",
            raw_response={
                "type": "offline",
                "status": "pending_verification",
                "amount": amount,
                "currency": currency,
            },
        )

    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Record a refund an operator pays out by hand."""
        return RefundResult(
            success=True,
            refund_id=f"refund_{transaction_id}",
            raw_response={
                "type": "manual_refund",
                "status": "pending",
                "amount": amount,
                "reason": reason,
            },
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Manual gateway doesn't have webhooks."""
        return None
