"""Activity history and point awards."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from growshare.models.activity import UserActivity
from growshare.models.user import User

logger = logging.getLogger(__name__)

# Activity types
BOOKING_CREATED = "BOOKING_CREATED"
BOOKING_APPROVED = "BOOKING_APPROVED"
BOOKING_REJECTED = "BOOKING_REJECTED"
BOOKING_CANCELLED = "BOOKING_CANCELLED"

# Point awards
BOOKING_CREATED_POINTS = 25
BOOKING_APPROVED_POINTS = 15


async def record_activity(
    db: AsyncSession,
    user_id: UUID,
    activity_type: str,
    title: str,
    description: str | None = None,
    points: int = 0,
    metadata: dict[str, Any] | None = None,
) -> UserActivity:
    """Append an activity record. Records are never updated afterwards."""
    activity = UserActivity(
        user_id=user_id,
        type=activity_type,
        title=title,
        description=description,
        points=points,
        metadata_=metadata,
    )
    db.add(activity)
    await db.flush()
    return activity


async def award_points(db: AsyncSession, user_id: UUID, points: int) -> None:
    """Atomically add ``points`` to a user's balance."""
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_points=User.total_points + points)
    )
    logger.debug(f"Awarded {points} points to user {user_id}")
