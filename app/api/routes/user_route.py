
from fastapi import APIRouter, Depends

from app.dependencies.auth import get_current_user
from app.models.user import User
from app.schemas.user import ProfileResponse, UserResponse


user_router = APIRouter()


@user_router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """
    Get the authenticated user's profile and current points balance.

    The balance is read from the database on every request, never from the
    session token.
    """
    return ProfileResponse(user=UserResponse.from_user(current_user))
