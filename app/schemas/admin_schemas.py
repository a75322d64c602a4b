from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel


class AdminPermissionResponse(CamelModel):
    is_admin: bool


class GrantPointsRequest(CamelModel):
    """Admin request to grant points to a user."""
    points: int = Field(gt=0)
    reason: Optional[str] = Field(default=None, max_length=255)
    reference: Optional[str] = Field(default=None, max_length=255)


class GrantPointsResponse(CamelModel):
    success: bool = True
    user_id: UUID
    points: int
    applied: bool


class SubscriptionUpdateRequest(CamelModel):
    subscription_type: str = Field(min_length=1, max_length=32)
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None


class ToolUsageSummary(CamelModel):
    count: int
    points: int


class UserAnalyticsResponse(CamelModel):
    total_users: int
    total_points_outstanding: int
    users_by_subscription: Dict[str, int]
    tool_usage: Dict[str, ToolUsageSummary]
