
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.db.session import get_db
from app.dependencies.auth import get_current_user, require_points
from app.models.points_transaction import PointsTransactionType
from app.models.user import User
from app.schemas.points_schemas import ToolListResponse, ToolResponse, ToolUsageRequest, ToolUsageResponse
from app.services.points_service import PointsService
from app.services.tool_usage_service import ToolUsageService
from app.utils.tools import get_tool, list_tools


logger = logging.getLogger(__name__)

tools_router = APIRouter()


@tools_router.get("", response_model=ToolListResponse)
async def get_tools(category: Optional[str] = None):
    """List enabled tools and their point costs."""
    return ToolListResponse(tools=[
        ToolResponse(
            id=tool.id,
            name=tool.name,
            category=tool.category,
            points_cost=tool.points_cost,
            max_usage_per_day=tool.max_usage_per_day,
            tags=tool.tags,
        )
        for tool in list_tools(category)
    ])


@tools_router.post("/{tool_id}/usage", response_model=ToolUsageResponse)
async def record_tool_usage(
    tool_id: str,
    usage_data: ToolUsageRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Charge a tool's cost and record the invocation.

    Returns 429 once the tool's daily limit is reached, 402 when the balance
    is known to be short before charging, and 400 if a concurrent request
    spent the points first. The usage row and the debit commit together.
    """
    tool = get_tool(tool_id)
    if tool is None:
        raise NotFound(f"Unknown tool: {tool_id}")

    require_points(current_user, tool.points_cost)

    user_id = current_user.id
    await ToolUsageService.check_daily_limit(user_id, tool, db)

    usage = ToolUsageService.stage_usage(
        user_id=user_id,
        tool_type=tool.id,
        points_cost=tool.points_cost,
        db=db,
        input_ref=usage_data.input_ref,
        output_ref=usage_data.output_ref,
    )
    if tool.points_cost > 0:
        remaining = await PointsService.try_debit(
            user_id,
            tool.points_cost,
            db,
            reason=tool.id,
            transaction_type=PointsTransactionType.CONSUME,
        )
    else:
        remaining = await PointsService.get_balance(user_id, db)
        await db.commit()

    logger.info(f"Recorded {tool.id} usage for user {user_id} ({tool.points_cost} points)")
    return ToolUsageResponse(
        usage_id=usage.id,
        tool_id=tool.id,
        consumed_points=tool.points_cost,
        remaining_points=remaining,
    )
