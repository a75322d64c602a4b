"""
Points balance, history and consumption endpoints.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies.auth import get_current_user
from app.models.points_transaction import PointsTransactionType
from app.models.user import User
from app.schemas.points_schemas import (
    BalanceResponse,
    ConsumePointsRequest,
    ConsumePointsResponse,
    PointsHistoryResponse,
    PointsTransactionResponse,
)
from app.services.points_service import PointsService
from app.services.tool_usage_service import ToolUsageService


logger = logging.getLogger(__name__)

points_router = APIRouter()


@points_router.get("", response_model=BalanceResponse)
async def get_balance(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the authenticated user's points balance."""
    points = await PointsService.get_balance(current_user.id, db)
    return BalanceResponse(points=points)


@points_router.get("/history", response_model=PointsHistoryResponse)
async def get_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List the authenticated user's ledger entries, newest first."""
    total, transactions = await PointsService.get_history(current_user.id, db, skip=skip, limit=limit)
    return PointsHistoryResponse(
        total=total,
        transactions=[PointsTransactionResponse.from_transaction(t) for t in transactions],
    )


@points_router.post("/consume", response_model=ConsumePointsResponse)
async def consume_points(
    consume_data: ConsumePointsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Consume points for a metered feature.

    The debit is a single conditional update; an insufficient balance returns
    400 and leaves the balance untouched. The usage row commits with the debit.
    """
    user_id = current_user.id
    ToolUsageService.stage_usage(
        user_id=user_id,
        tool_type=consume_data.type,
        points_cost=consume_data.points,
        db=db,
    )
    remaining = await PointsService.try_debit(
        user_id,
        consume_data.points,
        db,
        reason=consume_data.type,
        transaction_type=PointsTransactionType.CONSUME,
    )

    return ConsumePointsResponse(
        remaining_points=remaining,
        consumed_points=consume_data.points,
        type=consume_data.type,
    )
