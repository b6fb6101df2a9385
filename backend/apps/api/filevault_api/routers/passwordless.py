"""
Passwordless authentication router.

Provides endpoints for OTP and magic-link login.
"""

from typing import Annotated, Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from filevault_core import get_logger
from filevault_core.auth.session_context import SessionContext
from filevault_core.exceptions import UnauthorizedError
from filevault_core.schemas import (
    AuthStatusResponse,
    EmailRequest,
    MessageResponse,
    PasswordlessAuthResult,
    PasswordlessLoginResponse,
    VerifyOTPRequest,
)
from filevault_core.services import PasswordlessService

from ..config import Settings
from ..dependencies import get_passwordless_service, get_session_context, get_settings

logger = get_logger(__name__)

router = APIRouter()


def _user_info(result: PasswordlessAuthResult) -> dict[str, Any]:
    """Projection of the verified user cached in the session cookie."""
    return {
        "id": result.user.id,
        "email": result.user.email,
        "first_name": result.user.first_name,
        "last_name": result.user.last_name,
    }


def _bind_session(request: Request, context: SessionContext, result: PasswordlessAuthResult) -> None:
    context.authenticated(_user_info(result), session_handle=result.session_token).write_to(
        request.session
    )


@router.post("/send-otp")
async def send_otp(
    data: EmailRequest,
    service: Annotated[PasswordlessService, Depends(get_passwordless_service)],
) -> MessageResponse:
    """
    Send a one-time login code to an email address.

    The response is the same whether or not the email is registered.
    """
    return await service.send_otp(data.email)


@router.post("/verify-otp")
async def verify_otp(
    data: VerifyOTPRequest,
    request: Request,
    service: Annotated[PasswordlessService, Depends(get_passwordless_service)],
    context: Annotated[SessionContext, Depends(get_session_context)],
) -> PasswordlessLoginResponse:
    """
    Verify a one-time login code and start a session.

    Raises:
        UnauthorizedError: If the code is invalid, expired or already used.
    """
    result = await service.verify_otp(data.email, data.otp)
    _bind_session(request, context, result)
    return PasswordlessLoginResponse(message="Login successful", user=result.user)


@router.post("/send-magic-link")
async def send_magic_link(
    data: EmailRequest,
    service: Annotated[PasswordlessService, Depends(get_passwordless_service)],
) -> MessageResponse:
    """Send a magic login link to an email address."""
    return await service.send_magic_link(data.email)


@router.get("/verify-magic-link")
async def verify_magic_link(
    request: Request,
    service: Annotated[PasswordlessService, Depends(get_passwordless_service)],
    context: Annotated[SessionContext, Depends(get_session_context)],
    settings: Annotated[Settings, Depends(get_settings)],
    token: str | None = None,
) -> RedirectResponse:
    """
    Verify a magic link and redirect the browser to the frontend.

    Success and failure are both reported through the ``auth`` query
    parameter of the redirect.
    """
    try:
        if not token:
            raise UnauthorizedError("Invalid or expired magic link")
        result = await service.verify_magic_link(token)
    except UnauthorizedError as e:
        query = urlencode({"auth": "failed", "error": e.message})
        return RedirectResponse(f"{settings.frontend_url}?{query}", status_code=302)

    _bind_session(request, context, result)
    return RedirectResponse(f"{settings.frontend_url}?auth=success", status_code=302)


@router.get("/status")
async def status(
    context: Annotated[SessionContext, Depends(get_session_context)],
) -> AuthStatusResponse:
    """Report whether the session holds a verified user."""
    return AuthStatusResponse(is_authenticated=context.is_authenticated, user_info=context.user_info)
