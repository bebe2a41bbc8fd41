"""Payment intent state machine."""

from enum import Enum

from growshare.core.exceptions import InvalidPaymentTransition


class PaymentIntentStatus(str, Enum):
    """Payment intent states."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


PAYMENT_TRANSITIONS: dict[PaymentIntentStatus, set[PaymentIntentStatus]] = {
    PaymentIntentStatus.PENDING: {
        PaymentIntentStatus.PROCESSING,
        PaymentIntentStatus.SUCCEEDED,
        PaymentIntentStatus.FAILED,
        PaymentIntentStatus.CANCELLED,
    },
    PaymentIntentStatus.PROCESSING: {
        PaymentIntentStatus.SUCCEEDED,
        PaymentIntentStatus.FAILED,
        PaymentIntentStatus.CANCELLED,
    },
    # A failed attempt can be retried on the same intent.
    PaymentIntentStatus.FAILED: {PaymentIntentStatus.PENDING, PaymentIntentStatus.SUCCEEDED},
    PaymentIntentStatus.SUCCEEDED: {PaymentIntentStatus.REFUNDED},
    PaymentIntentStatus.CANCELLED: {PaymentIntentStatus.PENDING},
    PaymentIntentStatus.REFUNDED: set(),
}


def assert_payment_transition(current: str, target: PaymentIntentStatus) -> None:
    allowed = PAYMENT_TRANSITIONS.get(PaymentIntentStatus(current), set())
    if target not in allowed:
        raise InvalidPaymentTransition(
            f"Invalid payment transition: {current} → {target.value}"
        )
