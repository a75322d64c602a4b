

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import argon2
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings


# Set up argon2 hasher
ph = argon2.PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Base class for session token failures."""

    reason = "token_invalid"


class SigningError(TokenError):
    """Raised when no signing secret is configured."""

    reason = "signing_error"


class MalformedToken(TokenError):
    """Token is not a decodable JWT."""

    reason = "token_malformed"


class BadSignature(TokenError):
    """Token decodes but its signature does not verify."""

    reason = "token_invalid"


class TokenExpired(TokenError):
    """Token signature is valid but its exp claim is in the past."""

    reason = "token_expired"


def create_access_token(
    claims: Dict[str, Any],
    secret: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        claims: Data to encode in the token (sub, email, name).
        secret: Signing secret. Defaults to the configured JWT secret.
        expires_delta: Optional custom lifetime. Defaults to the configured TTL.

    Returns:
        str: Encoded JWT token.

    Raises:
        SigningError: If the secret is empty.
    """
    secret = settings.jwt_secret if secret is None else secret
    if not secret:
        raise SigningError("JWT secret is not configured")

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    })
    return jwt.encode(to_encode, secret, algorithm=settings.algorithm)


def decode_access_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token to verify.
        secret: Verification secret. Defaults to the configured JWT secret.

    Returns:
        dict: Decoded token payload.

    Raises:
        SigningError: If the secret is empty.
        MalformedToken: If the token cannot be parsed at all.
        BadSignature: If the signature or algorithm does not verify.
        TokenExpired: If the token is authentic but past its exp.
    """
    secret = settings.jwt_secret if secret is None else secret
    if not secret:
        raise SigningError("JWT secret is not configured")
    if not token:
        raise MalformedToken("Token is empty")

    # Parse without verification first so structural garbage is reported apart
    # from forged or expired tokens.
    try:
        jwt.get_unverified_header(token)
        jwt.get_unverified_claims(token)
    except JWTError as e:
        raise MalformedToken(str(e)) from e

    try:
        return jwt.decode(token, secret, algorithms=[settings.algorithm])
    except ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except JWTError as e:
        raise BadSignature(str(e)) from e


def hash_password(password: str) -> str:
    """
    Hash a password with argon2id.

    Args:
        password: Plain-text password.

    Returns:
        str: Encoded argon2 hash (salt and parameters included).
    """
    if not password:
        raise ValueError("Password cannot be empty")
    try:
        return ph.hash(password)
    except Exception as e:
        logger.error(f"Failed to hash password: {e}")
        raise


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Verify a password against its stored hash.

    Args:
        password: The plain password.
        password_hash: The stored argon2 hash, or None for OAuth-only users.

    Returns:
        bool: True if the password matches the hash.
    """
    if not password or not password_hash:
        return False
    try:
        ph.verify(password_hash, password)
        return True
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        logger.warning("Stored password hash is not a valid argon2 hash")
        return False
    except Exception as e:
        logger.error(f"Failed to verify password: {e}")
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """Check whether a stored hash was made with outdated argon2 parameters."""
    return ph.check_needs_rehash(password_hash)
