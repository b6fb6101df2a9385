"""
Users router.

Profile endpoints for bearer- and session-authenticated callers.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from filevault_core.schemas import UserResponse
from filevault_database.models import User

from ..dependencies import get_current_user, get_session_user

router = APIRouter()


@router.get("/me")
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Get the profile of the bearer-token user."""
    return UserResponse.model_validate(current_user)


@router.get("/me/session")
async def get_session_profile(
    user_info: Annotated[dict[str, Any], Depends(get_session_user)],
) -> dict[str, Any]:
    """Get the user-info cached in the browser session."""
    return user_info
