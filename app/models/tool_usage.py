

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base


class ToolUsage(Base):
    """
    Record of one metered tool invocation.

    Used for analytics only; the ledger does not read it.
    """

    __tablename__ = "tool_usage"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    tool_type = Column(String(64), nullable=False, index=True)
    input_ref = Column(Text, nullable=True)
    output_ref = Column(Text, nullable=True)
    points_cost = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
