"""Activity history schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ActivityResponse(BaseModel):
    """A single activity record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    description: str | None = None
    points: int
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    created_at: datetime


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]
    total: int
    total_points: int
    page: int
    page_size: int
