"""Database models."""

from growshare.models.activity import UserActivity
from growshare.models.booking import Booking
from growshare.models.notification import Notification
from growshare.models.payment import PaymentIntent
from growshare.models.plot import Plot
from growshare.models.user import User

__all__ = [
    # User
    "User",
    "UserActivity",
    # Plot
    "Plot",
    # Booking
    "Booking",
    # Payment
    "PaymentIntent",
    # Notification
    "Notification",
]
