"""Payment gateway service.

Routes payment operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

from growshare.config import settings
from growshare.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)
from growshare.gateways.manual import ManualGateway
from growshare.gateways.stripe_gateway import StripeGateway


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_safe_gateway_operation(gateway_type: GatewayType) -> None:
    """Block live-mode gateway operations outside production.

    Raises:
        RuntimeError: If a live key is used outside production
    """
    if gateway_type == GatewayType.STRIPE and not _is_production():
        key = settings.stripe_secret_key or ""
        if key and not key.startswith("sk_test_"):
            raise RuntimeError(
                f"Cannot execute live {gateway_type.value} gateway operations "
                f"in {settings.environment} environment. Use a test-mode key."
            )


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self):
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def _get_gateway(self, gateway_type: str | GatewayType | None = None) -> PaymentGateway:
        """Get or create gateway instance."""
        if gateway_type is None:
            gateway_type = settings.payment_gateway
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                gateway_type = GatewayType.MANUAL

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.STRIPE:
                self._gateways[gateway_type] = StripeGateway()
            else:
                self._gateways[gateway_type] = ManualGateway()

        return self._gateways[gateway_type]

    @property
    def default_gateway(self) -> GatewayType:
        return self._get_gateway().gateway_type

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
        gateway_type: str | GatewayType | None = None,
    ) -> PaymentResult:
        """Create payment via the configured gateway."""
        gateway = self._get_gateway(gateway_type)
        _assert_safe_gateway_operation(gateway.gateway_type)
        return await gateway.create_payment(
            amount=amount,
            currency=currency,
            reference_id=reference_id,
            description=description,
            metadata=metadata,
            customer_id=customer_id,
            destination_account=destination_account,
            application_fee=application_fee,
        )

    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
        gateway_type: str | GatewayType | None = None,
    ) -> RefundResult:
        """Process refund via gateway."""
        gateway = self._get_gateway(gateway_type)
        _assert_safe_gateway_operation(gateway.gateway_type)
        return await gateway.process_refund(
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
        gateway_type: str | GatewayType | None = None,
    ) -> dict | None:
        """Verify webhook from gateway."""
        gateway = self._get_gateway(gateway_type)
        return gateway.verify_webhook(payload, signature)


# Singleton instance
gateway_service = GatewayService()
