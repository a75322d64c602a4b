

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.errors import Conflict, NotFound, Unauthorized
from app.core.security import (
    create_access_token,
    hash_password,
    password_needs_rehash,
    verify_password,
)
from app.models.points_transaction import PointsTransaction, PointsTransactionType
from app.models.user import User


logger = logging.getLogger(__name__)


class AuthService:
    """Account creation, credential checks and session token issuance."""

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def session_claims(user: User) -> Dict[str, Any]:
        """Claims carried by the session token for a user."""
        return {"sub": str(user.id), "email": user.email, "name": user.name}

    @staticmethod
    def issue_token(user: User) -> str:
        """
        Create a session token for a user.

        Raises:
            SigningError: If no JWT secret is configured.
        """
        return create_access_token(AuthService.session_claims(user))

    @staticmethod
    async def get_user_by_id(user_id: UUID, db: AsyncSession) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.email == AuthService.normalize_email(email))
        )
        return result.scalars().first()

    @staticmethod
    async def _create_user(user: User, db: AsyncSession) -> User:
        """Insert a user together with the signup bonus ledger entry."""
        user.points = settings.signup_bonus_points
        db.add(user)
        try:
            await db.flush()
            if user.points > 0:
                db.add(PointsTransaction(
                    user_id=user.id,
                    transaction_type=PointsTransactionType.GRANT,
                    amount=user.points,
                    balance_after=user.points,
                    reason="signup_bonus",
                ))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict("An account with this email already exists")
        await db.refresh(user)
        return user

    @staticmethod
    async def register(
        email: str,
        password: str,
        db: AsyncSession,
        name: Optional[str] = None,
    ) -> User:
        """
        Register an email/password account.

        Raises:
            Conflict: If the email is already registered.
        """
        email = AuthService.normalize_email(email)
        if await AuthService.get_user_by_email(email, db):
            raise Conflict("An account with this email already exists")

        user = await AuthService._create_user(
            User(email=email, name=name, password_hash=hash_password(password)), db
        )
        logger.info(f"Registered new user: {user.id}")
        return user

    @staticmethod
    async def authenticate(email: str, password: str, db: AsyncSession) -> User:
        """
        Check email/password credentials.

        Returns:
            User: The matching user.

        Raises:
            Unauthorized: If the email is unknown or the password is wrong.
        """
        user = await AuthService.get_user_by_email(email, db)
        if not user or not verify_password(password, user.password_hash):
            logger.info("Login rejected: invalid credentials")
            raise Unauthorized("Invalid credentials", reason="invalid_credentials")

        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            await db.commit()
            logger.info(f"Upgraded password hash parameters for user {user.id}")

        return user

    @staticmethod
    async def upsert_google_user(id_info: Dict[str, Any], db: AsyncSession) -> User:
        """
        Find or create the user for a verified Google ID token.

        Matches on Google sub first, then links an existing password account
        with the same verified email.
        """
        google_sub = id_info["sub"]
        email = AuthService.normalize_email(id_info["email"])

        result = await db.execute(select(User).where(User.google_sub == google_sub))
        user = result.scalars().first()
        if user:
            logger.info(f"Found existing Google user: {user.id}")
            return user

        user = await AuthService.get_user_by_email(email, db)
        if user:
            if not id_info.get("email_verified", False):
                raise Unauthorized("Google email is not verified", reason="email_unverified")
            user.google_sub = google_sub
            user.picture = user.picture or id_info.get("picture")
            await db.commit()
            logger.info(f"Linked Google account to existing user: {user.id}")
            return user

        user = await AuthService._create_user(
            User(
                email=email,
                name=id_info.get("name"),
                google_sub=google_sub,
                picture=id_info.get("picture"),
            ),
            db,
        )
        logger.info(f"Created new Google user: {user.id}")
        return user

    @staticmethod
    async def require_user(user_id: UUID, db: AsyncSession) -> User:
        user = await AuthService.get_user_by_id(user_id, db)
        if not user:
            raise NotFound("User not found")
        return user
