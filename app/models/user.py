

import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    """
    User model for both email/password and Google authenticated accounts.

    ``password_hash`` is null for OAuth-only users and ``google_sub`` is null
    for password-only users. ``points`` is the authoritative balance and is
    only changed through the points ledger.
    """

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)
    google_sub = Column(String, unique=True, nullable=True, index=True)
    picture = Column(String, nullable=True)

    points = Column(Integer, default=0, nullable=False)

    subscription_type = Column(String(32), default="free", nullable=False)
    subscription_start = Column(DateTime(timezone=True), nullable=True)
    subscription_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )

    def has_sufficient_points(self, amount: int) -> bool:
        """Check the loaded balance against an amount (no locking)."""
        return self.points >= amount
