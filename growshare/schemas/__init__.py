"""Pydantic request and response schemas."""

from growshare.schemas.activity import ActivityListResponse, ActivityResponse
from growshare.schemas.booking import (
    BookingCreate,
    BookingListParams,
    BookingListResponse,
    BookingResponse,
    BookingRole,
    PlotSummary,
    UserSummary,
)
from growshare.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from growshare.schemas.payment import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    PaymentIntentSummary,
    RefundEligibilityResponse,
    RefundRequest,
    RefundResponse,
)

__all__ = [
    # Activity
    "ActivityListResponse",
    "ActivityResponse",
    # Booking
    "BookingCreate",
    "BookingListParams",
    "BookingListResponse",
    "BookingResponse",
    "BookingRole",
    "PlotSummary",
    "UserSummary",
    # Notification
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "UnreadCountResponse",
    # Payment
    "CreatePaymentIntentRequest",
    "CreatePaymentIntentResponse",
    "PaymentIntentSummary",
    "RefundEligibilityResponse",
    "RefundRequest",
    "RefundResponse",
]
