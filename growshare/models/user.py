"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from growshare.database import Base

if TYPE_CHECKING:
    from growshare.models.activity import UserActivity
    from growshare.models.booking import Booking
    from growshare.models.plot import Plot


class User(Base):
    """User account model.

    Credentials live with the external identity provider; ``auth_provider_id``
    is the provider's user id carried in session tokens.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auth_provider_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # Profile
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    avatar_url: Mapped[str | None] = mapped_column(Text)

    # Gamification
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Payments (Stripe customer + Connect payout account)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(100))
    stripe_connect_id: Mapped[str | None] = mapped_column(String(100), index=True)
    stripe_onboarding_complete: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    plots: Mapped[list["Plot"]] = relationship("Plot", back_populates="owner")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="renter")
    activities: Mapped[list["UserActivity"]] = relationship(
        "UserActivity", back_populates="user"
    )

    @property
    def full_name(self) -> str:
        """Get user's display name."""
        parts = [self.first_name, self.last_name]
        return " ".join(p for p in parts if p) or "A GrowShare member"
