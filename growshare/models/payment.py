"""Payment-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from growshare.database import Base
from growshare.domain.payment_state import PaymentIntentStatus

if TYPE_CHECKING:
    from growshare.models.booking import Booking
    from growshare.models.user import User


class PaymentIntent(Base):
    """Captured (or pending) payment for a booking."""

    __tablename__ = "payment_intents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("bookings.id"), unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )

    # Gateway
    gateway: Mapped[str] = mapped_column(String(30), default="stripe")  # stripe, manual
    stripe_payment_intent_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )

    # Amount
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # in cents
    currency: Mapped[str] = mapped_column(String(3), default="usd")

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=PaymentIntentStatus.PENDING.value, nullable=False
    )  # PENDING, PROCESSING, SUCCEEDED, FAILED, CANCELLED, REFUNDED
    failure_message: Mapped[str | None] = mapped_column(Text)

    # Free-form bookkeeping; updated by merging, never replaced.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql")
    )

    # Timestamps
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    booking: Mapped["Booking | None"] = relationship("Booking", back_populates="payment_intent")
    user: Mapped["User"] = relationship("User")

    def merge_metadata(self, values: dict[str, Any]) -> None:
        """Add ``values`` to metadata, keeping existing keys."""
        self.metadata_ = {**(self.metadata_ or {}), **values}
