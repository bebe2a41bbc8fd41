"""Booking model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from growshare.database import Base
from growshare.domain.booking_state import BookingStatus

if TYPE_CHECKING:
    from growshare.models.payment import PaymentIntent
    from growshare.models.plot import Plot
    from growshare.models.user import User


class Booking(Base):
    """A renter's request to occupy a plot for a date range."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    plot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("plots.id"), nullable=False, index=True
    )
    renter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )

    # Dates
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=BookingStatus.PENDING.value, nullable=False, index=True
    )  # PENDING, APPROVED, REJECTED, CANCELLED, ACTIVE, COMPLETED

    # Pricing (whole currency units)
    monthly_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    security_deposit: Mapped[int | None] = mapped_column(Integer)

    # Renter's note to the owner
    message: Mapped[str | None] = mapped_column(Text)

    # Payment
    stripe_payment_id: Mapped[str | None] = mapped_column(String(100))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    plot: Mapped["Plot"] = relationship("Plot", back_populates="bookings")
    renter: Mapped["User"] = relationship("User", back_populates="bookings")
    payment_intent: Mapped["PaymentIntent | None"] = relationship(
        "PaymentIntent", back_populates="booking", uselist=False
    )
