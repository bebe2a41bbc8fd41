"""Activity history endpoints."""

from fastapi import APIRouter, Query
from sqlalchemy import func, select

from growshare.api.deps import CurrentUser, DbSession
from growshare.models.activity import UserActivity
from growshare.schemas.activity import ActivityListResponse, ActivityResponse

router = APIRouter()


@router.get("", response_model=ActivityListResponse)
async def get_my_activity(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ActivityListResponse:
    """Get the current user's activity history and point balance."""
    query = select(UserActivity).where(UserActivity.user_id == current_user.id)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(UserActivity.created_at.desc()).offset(offset).limit(page_size)
    )

    return ActivityListResponse(
        activities=[ActivityResponse.model_validate(a) for a in result.scalars().all()],
        total=total,
        total_points=current_user.total_points,
        page=page,
        page_size=page_size,
    )
