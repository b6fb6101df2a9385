"""
Authentication router.

Provides endpoints for registration, password login, sign-up confirmation,
token refresh and the bearer-authenticated profile.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from filevault_core.schemas import (
    ConfirmSignUpRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from filevault_core.services import AuthService
from filevault_database.models import User

from ..dependencies import get_auth_service, get_current_user

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> RegisterResponse:
    """
    Register a new user account.

    Args:
        data: User registration data.
        auth_service: Authentication service.

    Returns:
        Created user and whether the provider already confirmed it.

    Raises:
        ConflictError: If email is already registered.
    """
    return await auth_service.register(data)


@router.post("/login")
async def login(
    data: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    """
    Authenticate user and return provider tokens.

    Raises:
        UnauthorizedError: If credentials are invalid or the email is unconfirmed.
    """
    return await auth_service.login(data)


@router.post("/confirm")
async def confirm_sign_up(
    data: ConfirmSignUpRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Confirm an account with the emailed verification code."""
    return await auth_service.confirm_sign_up(data.email, data.code)


@router.post("/refresh")
async def refresh_token(
    data: RefreshTokenRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Refresh access token using refresh token.

    Raises:
        UnauthorizedError: If refresh token is invalid or revoked.
    """
    return await auth_service.refresh_token(data.refresh_token, data.username)


@router.get("/me")
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """
    Get current authenticated user information.

    Args:
        current_user: Current authenticated user from token.

    Returns:
        User profile data.
    """
    return UserResponse.model_validate(current_user)
