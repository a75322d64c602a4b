

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class PointsTransactionType(enum.Enum):
    """Enumeration of ledger entry types."""
    PURCHASE = "purchase"
    CONSUME = "consume"
    GRANT = "grant"
    REFUND = "refund"


class PointsTransaction(Base):
    """
    Append-only ledger entry for a change to a user's points balance.

    ``amount`` is signed: negative for debits, positive for credits.
    ``reference`` is unique when set; purchase credits store the Stripe
    checkout session id there so a replayed webhook cannot credit twice.
    """

    __tablename__ = "points_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    transaction_type = Column(Enum(PointsTransactionType), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)

    reference = Column(String(255), unique=True, nullable=True, index=True)

    transaction_metadata = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", backref="points_transactions")

    def is_debit(self) -> bool:
        """Check if this entry removed points."""
        return self.amount < 0

    def is_credit(self) -> bool:
        """Check if this entry added points."""
        return self.amount > 0
