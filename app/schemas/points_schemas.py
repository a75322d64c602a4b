from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel


class ConsumePointsRequest(CamelModel):
    """Request model for consuming points."""
    points: int = Field(gt=0)
    type: str = Field(min_length=1, max_length=64)


class ConsumePointsResponse(CamelModel):
    success: bool = True
    remaining_points: int
    consumed_points: int
    type: str


class BalanceResponse(CamelModel):
    points: int


class PointsTransactionResponse(CamelModel):
    """Response model for a ledger entry."""
    id: UUID
    transaction_type: str
    amount: int
    balance_after: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, transaction) -> "PointsTransactionResponse":
        return cls(
            id=transaction.id,
            transaction_type=transaction.transaction_type.value,
            amount=transaction.amount,
            balance_after=transaction.balance_after,
            reason=transaction.reason,
            reference=transaction.reference,
            created_at=transaction.created_at,
        )


class PointsHistoryResponse(CamelModel):
    total: int
    transactions: List[PointsTransactionResponse]


class ToolResponse(CamelModel):
    id: str
    name: str
    category: str
    points_cost: int
    max_usage_per_day: Optional[int] = None
    tags: List[str] = []


class ToolListResponse(CamelModel):
    tools: List[ToolResponse]


class ToolUsageRequest(CamelModel):
    """Request model for recording a metered tool invocation."""
    input_ref: Optional[str] = None
    output_ref: Optional[str] = None


class ToolUsageResponse(CamelModel):
    success: bool = True
    usage_id: UUID
    tool_id: str
    consumed_points: int
    remaining_points: int
