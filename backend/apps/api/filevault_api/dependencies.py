"""
FastAPI dependencies.

Provides dependency injection for database sessions, providers, services and
authentication.
"""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from filevault_core.auth.providers import CognitoIdentityClient, OIDCProvider
from filevault_core.auth.session_context import SessionContext
from filevault_core.auth.verifiers import BearerTokenVerifier, SessionVerifier
from filevault_core.services import (
    AuthService,
    IdentityService,
    NotificationSender,
    OIDCService,
    PasswordlessService,
)
from filevault_database import IdentityStore
from filevault_database.models import User
from filevault_database.session import get_session

from .config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _require_state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not available",
        )
    return value


def get_oidc_provider(request: Request) -> OIDCProvider:
    """Get the initialized OIDC provider."""
    return _require_state(request, "oidc_provider", "Identity provider")


def get_cognito_client(request: Request) -> CognitoIdentityClient:
    return _require_state(request, "cognito_client", "Identity provider")


def get_notifier(request: Request) -> NotificationSender:
    return _require_state(request, "notifier", "Notification service")


def get_identity_store(session: Annotated[AsyncSession, Depends(get_session)]) -> IdentityStore:
    """Get identity store bound to the request's database session."""
    return IdentityStore(session)


def get_session_context(request: Request) -> SessionContext:
    """Typed view over the request's session cookie."""
    return SessionContext.from_session(request.session)


# Service dependencies
def get_passwordless_service(
    store: Annotated[IdentityStore, Depends(get_identity_store)],
    notifier: Annotated[NotificationSender, Depends(get_notifier)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PasswordlessService:
    """Get passwordless service instance."""
    return PasswordlessService(
        store,
        notifier,
        magic_link_url=settings.magic_link_url,
        is_production=settings.is_production,
    )


def get_oidc_service(
    provider: Annotated[OIDCProvider, Depends(get_oidc_provider)],
) -> OIDCService:
    """Get OIDC flow service instance."""
    return OIDCService(provider)


def get_auth_service(
    store: Annotated[IdentityStore, Depends(get_identity_store)],
    client: Annotated[CognitoIdentityClient, Depends(get_cognito_client)],
) -> AuthService:
    """Get credential authentication service instance."""
    return AuthService(store, client)


# Authentication dependencies
async def get_current_user(
    request: Request,
    provider: Annotated[OIDCProvider, Depends(get_oidc_provider)],
    store: Annotated[IdentityStore, Depends(get_identity_store)],
) -> User:
    """
    Get current user from a provider-issued bearer token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or the account
            is inactive.
    """
    verifier = BearerTokenVerifier(provider, IdentityService(store))
    return await verifier.verify(request)


async def get_session_user(request: Request) -> dict[str, Any]:
    """
    Get the user-info cached in the browser session.

    Raises:
        UnauthorizedError: If the session is not authenticated.
    """
    return await SessionVerifier().verify(request)
