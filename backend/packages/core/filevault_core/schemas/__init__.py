"""
Pydantic schemas for API requests and responses.
"""

from .auth import (
    AuthStatusResponse,
    ConfirmSignUpRequest,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordlessAuthResult,
    PasswordlessLoginResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    VerifyOTPRequest,
)
from .user import UserResponse

__all__ = [
    # Passwordless
    "EmailRequest",
    "VerifyOTPRequest",
    "MessageResponse",
    "PasswordlessAuthResult",
    "PasswordlessLoginResponse",
    "AuthStatusResponse",
    # Credentials
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "ConfirmSignUpRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    # User
    "UserResponse",
]
