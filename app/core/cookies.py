"""
Session cookie transport.

Login, logout and the Google callback all go through these helpers so the
cookie attributes cannot drift between routes.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from app.core.config import settings


@dataclass(frozen=True)
class CookieSettings:
    """Attributes shared by every Set-Cookie for the session token."""
    name: str
    max_age: int
    httponly: bool = True
    secure: bool = False
    samesite: str = "lax"
    path: str = "/"


def get_cookie_settings() -> CookieSettings:
    """Build cookie settings from configuration. Max-Age matches the token TTL."""
    return CookieSettings(
        name=settings.cookie_name,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite=settings.cookie_samesite,
        path="/",
    )


def write_session_cookie(
    response: Response,
    token: str,
    cookie: Optional[CookieSettings] = None,
) -> None:
    """Append a Set-Cookie header carrying the session token."""
    cookie = cookie or get_cookie_settings()
    response.set_cookie(
        key=cookie.name,
        value=token,
        max_age=cookie.max_age,
        path=cookie.path,
        secure=cookie.secure,
        httponly=cookie.httponly,
        samesite=cookie.samesite,
    )


def clear_session_cookie(response: Response, cookie: Optional[CookieSettings] = None) -> None:
    """Expire the session cookie using the same attributes it was set with."""
    cookie = cookie or get_cookie_settings()
    response.delete_cookie(
        key=cookie.name,
        path=cookie.path,
        secure=cookie.secure,
        httponly=cookie.httponly,
        samesite=cookie.samesite,
    )


def read_session_cookie(request: Request, cookie: Optional[CookieSettings] = None) -> Optional[str]:
    """Return the session token from the request cookies, or None."""
    cookie = cookie or get_cookie_settings()
    token = request.cookies.get(cookie.name)
    return token or None
