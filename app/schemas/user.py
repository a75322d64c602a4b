

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    """Schema for email/password registration."""
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(CamelModel):
    """Schema for email/password login."""
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(CamelModel):
    """Schema for user response to client. Never carries credentials."""
    user_id: UUID
    email: EmailStr
    name: Optional[str] = None
    picture: Optional[str] = None
    points: int
    subscription_type: str
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            picture=user.picture,
            points=user.points,
            subscription_type=user.subscription_type,
            subscription_start=user.subscription_start,
            subscription_end=user.subscription_end,
        )


class RegisterResponse(CamelModel):
    success: bool = True
    user: UserResponse


class LoginResponse(CamelModel):
    """Schema for login response; the token is also set as a cookie."""
    success: bool = True
    token: str
    user: UserResponse


class LogoutResponse(CamelModel):
    success: bool = True
    message: str = "Logged out successfully"


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserResponse
