import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DailyLimitExceeded
from app.models.tool_usage import ToolUsage
from app.utils.tools import ToolConfig


logger = logging.getLogger(__name__)


class ToolUsageService:
    """Service for recording and summarizing metered tool usage."""

    @staticmethod
    def stage_usage(
        user_id: UUID,
        tool_type: str,
        points_cost: int,
        db: AsyncSession,
        input_ref: Optional[str] = None,
        output_ref: Optional[str] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> ToolUsage:
        """
        Add a tool usage record to the session without committing.

        The record is written by the caller's next commit, so it lands in
        the same transaction as the points debit for the same call.

        Args:
            user_id: User who invoked the tool.
            tool_type: Tool identifier.
            points_cost: Points charged for the invocation.
            db: Database session.
            input_ref: Optional reference to the input (e.g. image URL).
            output_ref: Optional reference to the output.
            success: Whether the invocation succeeded.
            error_message: Failure description when success is False.
        """
        usage = ToolUsage(
            user_id=user_id,
            tool_type=tool_type,
            points_cost=points_cost,
            input_ref=input_ref,
            output_ref=output_ref,
            success=success,
            error_message=error_message,
        )
        db.add(usage)
        return usage

    @staticmethod
    async def count_today(user_id: UUID, tool_type: str, db: AsyncSession) -> int:
        """Count a user's successful uses of a tool since midnight UTC."""
        day_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        result = await db.execute(
            select(func.count(ToolUsage.id)).where(
                ToolUsage.user_id == user_id,
                ToolUsage.tool_type == tool_type,
                ToolUsage.success.is_(True),
                ToolUsage.created_at >= day_start,
            )
        )
        return result.scalar_one()

    @staticmethod
    async def check_daily_limit(user_id: UUID, tool: ToolConfig, db: AsyncSession) -> None:
        """
        Refuse a tool call once the user has reached its daily limit.

        Raises:
            DailyLimitExceeded: If today's usage count has reached
                ``tool.max_usage_per_day``.
        """
        if not tool.max_usage_per_day:
            return
        used = await ToolUsageService.count_today(user_id, tool.id, db)
        if used >= tool.max_usage_per_day:
            logger.info(f"Daily limit reached for user {user_id} on {tool.id}: {used}/{tool.max_usage_per_day}")
            raise DailyLimitExceeded(tool.id, tool.max_usage_per_day)

    @staticmethod
    async def usage_by_tool(db: AsyncSession) -> Dict[str, Dict[str, int]]:
        """
        Aggregate usage counts and points spent per tool.

        Returns:
            dict: tool_type -> {"count": ..., "points": ...}
        """
        result = await db.execute(
            select(
                ToolUsage.tool_type,
                func.count(ToolUsage.id),
                func.coalesce(func.sum(ToolUsage.points_cost), 0),
            ).group_by(ToolUsage.tool_type)
        )
        return {
            tool_type: {"count": int(count), "points": int(points)}
            for tool_type, count, points in result.all()
        }
