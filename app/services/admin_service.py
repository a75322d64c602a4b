

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.auth_service import AuthService
from app.services.tool_usage_service import ToolUsageService


logger = logging.getLogger(__name__)


class AdminService:
    """Operations behind the admin-only routes."""

    @staticmethod
    async def user_analytics(db: AsyncSession) -> Dict[str, Any]:
        """Summarize users, outstanding points and tool usage."""
        total_users, total_points = (
            await db.execute(select(func.count(User.id), func.coalesce(func.sum(User.points), 0)))
        ).one()

        by_subscription = await db.execute(
            select(User.subscription_type, func.count(User.id)).group_by(User.subscription_type)
        )

        return {
            "total_users": int(total_users),
            "total_points_outstanding": int(total_points),
            "users_by_subscription": {sub: int(count) for sub, count in by_subscription.all()},
            "tool_usage": await ToolUsageService.usage_by_tool(db),
        }

    @staticmethod
    async def update_subscription(
        user_id: UUID,
        subscription_type: str,
        db: AsyncSession,
        subscription_start: Optional[datetime] = None,
        subscription_end: Optional[datetime] = None,
    ) -> User:
        """
        Set a user's subscription type and period.

        Raises:
            NotFound: If the user does not exist.
        """
        user = await AuthService.require_user(user_id, db)
        user.subscription_type = subscription_type
        user.subscription_start = subscription_start
        user.subscription_end = subscription_end
        await db.commit()
        await db.refresh(user)

        logger.info(f"Updated subscription for user {user_id}: {subscription_type}")
        return user
