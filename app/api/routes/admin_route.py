"""
Admin-only endpoints. Access is limited to the ADMIN_USER_IDS allow-list.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies.auth import require_admin
from app.models.points_transaction import PointsTransactionType
from app.models.user import User
from app.schemas.admin_schemas import (
    AdminPermissionResponse,
    GrantPointsRequest,
    GrantPointsResponse,
    SubscriptionUpdateRequest,
    UserAnalyticsResponse,
)
from app.schemas.user import UserResponse
from app.services.admin_service import AdminService
from app.services.points_service import PointsService


logger = logging.getLogger(__name__)

admin_router = APIRouter()


@admin_router.get("/check-permission", response_model=AdminPermissionResponse)
async def check_permission(admin: User = Depends(require_admin)):
    return AdminPermissionResponse(is_admin=True)


@admin_router.get("/user-analytics", response_model=UserAnalyticsResponse)
async def user_analytics(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Aggregate user, points and tool-usage statistics."""
    return UserAnalyticsResponse(**await AdminService.user_analytics(db))


@admin_router.post("/users/{user_id}/points", response_model=GrantPointsResponse)
async def grant_points(
    user_id: UUID,
    grant_data: GrantPointsRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Grant points to a user.

    Passing a ``reference`` makes the grant idempotent.
    """
    admin_id = admin.id
    points, applied = await PointsService.credit(
        user_id,
        grant_data.points,
        db,
        reason=grant_data.reason or "admin_grant",
        reference=grant_data.reference,
        transaction_type=PointsTransactionType.GRANT,
        metadata={"granted_by": str(admin_id)},
    )
    logger.info(f"Admin {admin_id} granted {grant_data.points} points to user {user_id} (applied: {applied})")
    return GrantPointsResponse(user_id=user_id, points=points, applied=applied)


@admin_router.patch("/users/{user_id}/subscription", response_model=UserResponse)
async def update_subscription(
    user_id: UUID,
    subscription_data: SubscriptionUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set a user's subscription type and period."""
    user = await AdminService.update_subscription(
        user_id,
        subscription_data.subscription_type,
        db,
        subscription_start=subscription_data.subscription_start,
        subscription_end=subscription_data.subscription_end,
    )
    return UserResponse.from_user(user)
