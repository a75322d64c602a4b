

import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from google.auth.transport import requests
from google.oauth2 import id_token
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.cookies import clear_session_cookie, write_session_cookie
from app.core.errors import ServerError, Unauthorized, ValidationError
from app.core.security import SigningError
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from app.services.auth_service import AuthService

# Set up logger
logger = logging.getLogger(__name__)

auth_router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


def _issue_token(user: User) -> str:
    try:
        return AuthService.issue_token(user)
    except SigningError as e:
        logger.error(f"Cannot issue session token: {e}")
        raise ServerError("Server configuration error") from e


def _get_google_auth_url(state: str) -> str:
    """
    Generate Google OAuth2 authorization URL.

    Args:
        state: Random state string for CSRF protection.

    Returns:
        str: Google OAuth URL.
    """
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "scope": "openid email profile",
        "response_type": "code",
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


@auth_router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register an email/password account.

    New accounts start with the signup bonus points.
    """
    user = await AuthService.register(
        email=register_data.email,
        password=register_data.password,
        name=register_data.name,
        db=db,
    )
    return RegisterResponse(user=UserResponse.from_user(user))


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Log in with email and password.

    Sets the session cookie and also returns the token for clients that
    send it as a Bearer header.
    """
    user = await AuthService.authenticate(login_data.email, login_data.password, db)
    token = _issue_token(user)
    write_session_cookie(response, token)

    logger.info(f"User logged in: {user.id}")
    return LoginResponse(token=token, user=UserResponse.from_user(user))


@auth_router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response):
    """Clear the session cookie."""
    clear_session_cookie(response)
    return LogoutResponse()


@auth_router.get("/google", response_class=RedirectResponse)
async def google_auth():
    """
    Initiate Google OAuth2 login flow.

    Generates state token for CSRF protection and redirects to Google.
    """
    if not settings.google_client_id:
        raise ServerError("Google OAuth2 not configured")

    # Generate random state for CSRF protection
    state = secrets.token_urlsafe(32)

    redirect = RedirectResponse(url=_get_google_auth_url(state), status_code=302)
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=600,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    return redirect


@auth_router.get("/google/callback", response_class=RedirectResponse)
async def google_auth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Handle Google OAuth2 callback.

    Verifies state and ID token, creates or finds the user, sets the session
    cookie and redirects to the frontend.
    """
    if error:
        raise ValidationError(f"OAuth error: {error}")

    if not code:
        raise ValidationError("Authorization code missing")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        raise Unauthorized("OAuth state mismatch", reason="oauth_state_mismatch")

    if not settings.google_client_id or not settings.google_client_secret:
        raise ServerError("Google OAuth2 not properly configured")

    token_data = {
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": settings.google_redirect_uri,
    }

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            token_response = await client.post(GOOGLE_TOKEN_URL, data=token_data)
            token_response.raise_for_status()
            token_info = token_response.json()
    except httpx.HTTPError as e:
        logger.error(f"Google token exchange failed: {e}")
        raise Unauthorized("OAuth verification failed", reason="oauth_exchange_failed") from e

    id_token_value = token_info.get("id_token")
    if not id_token_value:
        raise Unauthorized("ID token missing from response", reason="oauth_exchange_failed")

    try:
        # Verify the ID token with Google's certificates
        id_info = id_token.verify_oauth2_token(
            id_token_value,
            requests.Request(),
            settings.google_client_id,
            clock_skew_in_seconds=10
        )
    except ValueError as e:
        logger.error(f"Google ID token verification failed: {e}")
        raise Unauthorized("OAuth verification failed", reason="oauth_token_invalid") from e

    logger.info(f"OAuth callback for user with Google sub: {id_info['sub']}")

    user = await AuthService.upsert_google_user(id_info, db)
    token = _issue_token(user)

    redirect = RedirectResponse(url=f"{settings.frontend_url}/auth/success", status_code=302)
    write_session_cookie(redirect, token)
    redirect.delete_cookie(OAUTH_STATE_COOKIE, path="/")

    logger.info(f"Successfully issued session for Google user: {user.id}")
    return redirect
