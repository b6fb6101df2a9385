"""
OIDC router.

Browser redirect flow against the hosted identity provider.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from filevault_core import get_logger
from filevault_core.auth.session_context import SessionContext
from filevault_core.exceptions import UnauthorizedError
from filevault_core.schemas import AuthStatusResponse
from filevault_core.services import OIDCService

from ..config import Settings
from ..dependencies import get_oidc_service, get_session_context, get_settings

logger = get_logger(__name__)

router = APIRouter()


@router.get("/login")
async def login(
    request: Request,
    service: Annotated[OIDCService, Depends(get_oidc_service)],
    context: Annotated[SessionContext, Depends(get_session_context)],
) -> RedirectResponse:
    """Redirect the browser to the provider's authorization endpoint."""
    url, context = service.login(context)
    context.write_to(request.session)
    return RedirectResponse(url, status_code=302)


@router.get("/callback")
async def callback(
    request: Request,
    service: Annotated[OIDCService, Depends(get_oidc_service)],
    context: Annotated[SessionContext, Depends(get_session_context)],
    settings: Annotated[Settings, Depends(get_settings)],
    code: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """
    Complete the provider redirect.

    On failure the browser is sent back to the login entry point.
    """
    try:
        context = await service.callback(code, state, context)
    except UnauthorizedError:
        context.without_redirect_checks().write_to(request.session)
        return RedirectResponse(f"{settings.api_prefix}/auth/oidc/login", status_code=302)

    context.write_to(request.session)
    return RedirectResponse(settings.frontend_url, status_code=302)


@router.get("/logout")
async def logout(
    request: Request,
    service: Annotated[OIDCService, Depends(get_oidc_service)],
) -> RedirectResponse:
    """Clear the local session and redirect to the provider logout endpoint."""
    try:
        request.session.clear()
    except Exception:
        logger.exception("[OIDC] Failed to clear local session")
    return RedirectResponse(service.logout_url(), status_code=302)


@router.get("/status")
async def status(
    context: Annotated[SessionContext, Depends(get_session_context)],
) -> AuthStatusResponse:
    """Report whether the session holds cached user-info, without contacting the provider."""
    return OIDCService.status(context)
