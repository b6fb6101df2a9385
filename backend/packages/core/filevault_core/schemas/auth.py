"""
Authentication schemas.

Request and response models for the passwordless, OIDC and credential flows.
"""

from typing import Any

from pydantic import BaseModel, EmailStr, Field

from .user import UserResponse


class EmailRequest(BaseModel):
    """Request carrying only an email address (send OTP / magic link)."""

    email: EmailStr


class VerifyOTPRequest(BaseModel):
    """OTP verification request."""

    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=32)


class MessageResponse(BaseModel):
    """Generic acknowledgment."""

    message: str


class PasswordlessAuthResult(BaseModel):
    """Outcome of a successful OTP or magic-link verification."""

    user: UserResponse
    session_token: str


class PasswordlessLoginResponse(BaseModel):
    """API response after OTP verification."""

    message: str
    user: UserResponse


class AuthStatusResponse(BaseModel):
    """Session authentication status."""

    is_authenticated: bool
    user_info: dict[str, Any] | None = None


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class RegisterResponse(BaseModel):
    """Account registration response."""

    message: str
    user: UserResponse
    user_confirmed: bool


class LoginRequest(BaseModel):
    """Password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class ConfirmSignUpRequest(BaseModel):
    """Email confirmation request."""

    email: EmailStr
    code: str = Field(..., min_length=1, max_length=32)


class RefreshTokenRequest(BaseModel):
    """Refresh token request."""

    refresh_token: str
    username: str | None = None  # Needed when the app client has a secret


class TokenResponse(BaseModel):
    """Provider-issued tokens, passed through verbatim."""

    access_token: str
    id_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None


class LoginResponse(BaseModel):
    """Password login response."""

    user: UserResponse
    tokens: TokenResponse
