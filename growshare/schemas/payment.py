"""Payment-related Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from growshare.domain.payment_state import PaymentIntentStatus


class PaymentIntentSummary(BaseModel):
    """Payment intent as shown with a booking."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    stripe_payment_intent_id: str
    amount: int
    currency: str
    status: PaymentIntentStatus
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    completed_at: datetime | None = None


class CreatePaymentIntentRequest(BaseModel):
    booking_id: UUID


class CreatePaymentIntentResponse(BaseModel):
    """Client secret for confirming the payment in the browser."""

    client_secret: str | None
    payment_intent: PaymentIntentSummary


class RefundRequest(BaseModel):
    booking_id: UUID


class RefundEligibilityResponse(BaseModel):
    """Refund a cancellation would produce right now. Amounts are in cents."""

    eligible: bool
    reason: str | None = None
    refund_percentage: int
    refund_amount: int
    original_amount: int
    days_until_start: int
    policy: dict[str, str]


class RefundResponse(BaseModel):
    """Outcome of an explicit refund request. Amounts are in cents."""

    success: bool
    message: str
    refund_id: str | None = None
    refund_amount: int = 0
    refund_percentage: int = 0
