"""Core utilities and security modules."""

from growshare.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    InvalidBookingStatus,
    InvalidPaymentTransition,
    NotFoundError,
    PayoutSetupRequired,
    RateLimitExceeded,
    ValidationError,
)
from growshare.core.security import create_access_token, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "InvalidBookingStatus",
    "InvalidPaymentTransition",
    "NotFoundError",
    "PayoutSetupRequired",
    "RateLimitExceeded",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
