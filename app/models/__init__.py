from app.models.points_transaction import PointsTransaction, PointsTransactionType
from app.models.tool_usage import ToolUsage
from app.models.user import User

__all__ = ["PointsTransaction", "PointsTransactionType", "ToolUsage", "User"]
