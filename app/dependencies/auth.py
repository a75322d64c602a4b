

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.cookies import read_session_cookie
from app.core.errors import AdminAccessDenied, PaymentRequired, ServerError, Unauthorized
from app.core.security import SigningError, TokenError, decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services.auth_service import AuthService


logger = logging.getLogger(__name__)

# JWT Bearer token dependency, used when no session cookie is present
bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_session(token: Optional[str], db: AsyncSession) -> User:
    """
    Resolve a session token to the current user.

    Args:
        token: Raw JWT from the cookie or Authorization header.
        db: Database session.

    Returns:
        User: Authenticated user object, with a freshly read balance.

    Raises:
        Unauthorized: If the token is missing, invalid, expired, or the user
            no longer exists.
    """
    if not token:
        raise Unauthorized("Authentication credentials not provided", reason="missing_token")

    try:
        claims = decode_access_token(token)
    except SigningError as e:
        logger.error(f"Cannot verify session tokens: {e}")
        raise ServerError("Server configuration error") from e
    except TokenError as e:
        raise Unauthorized("Invalid authentication token", reason=e.reason) from e

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise Unauthorized("Invalid authentication token", reason="token_malformed")

    user = await AuthService.get_user_by_id(user_id, db)
    if not user:
        raise Unauthorized("User not found", reason="user_not_found")

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency to get the authenticated user.

    Reads the session cookie first, then falls back to an
    ``Authorization: Bearer`` header.
    """
    token = read_session_cookie(request)
    if not token and credentials is not None:
        token = credentials.credentials
    return await resolve_session(token, db)


def is_admin(user: User) -> bool:
    """Check a user against the ADMIN_USER_IDS allow-list."""
    return str(user.id) in settings.admin_ids


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency for admin-only routes.

    Raises:
        AdminAccessDenied: If the user is not on the admin allow-list.
    """
    if not is_admin(current_user):
        logger.warning(f"Admin access denied for user {current_user.id}")
        raise AdminAccessDenied()
    return current_user


def require_points(user: User, cost: int) -> None:
    """
    Pre-check that a user can afford a metered operation.

    This only avoids starting work the user cannot pay for. The charge itself
    must still go through PointsService.try_debit.

    Raises:
        PaymentRequired: If the loaded balance is below cost.
    """
    if cost > 0 and not user.has_sufficient_points(cost):
        raise PaymentRequired(
            f"This operation costs {cost} points, you have {user.points}",
            details={"required": cost, "available": user.points},
        )
