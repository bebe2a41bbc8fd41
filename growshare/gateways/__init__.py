"""Payment gateway adapters."""

from growshare.gateways.base import GatewayType, PaymentGateway, PaymentResult, RefundResult

__all__ = ["GatewayType", "PaymentGateway", "PaymentResult", "RefundResult"]
