"""
Bearer token verification.

Verifies provider-issued access tokens from the Authorization header and
resolves them to a local user, provisioning one on first sight.
"""

from fastapi.security.utils import get_authorization_scheme_param
from starlette.requests import HTTPConnection

from filevault_core import get_logger
from filevault_core.auth.providers import OIDCProvider
from filevault_core.exceptions import UnauthorizedError
from filevault_core.services.identity_service import IdentityService, normalize_email
from filevault_database import UniqueConstraintError
from filevault_database.models import User

from .base import Verifier

logger = get_logger(__name__)


class BearerTokenVerifier(Verifier[User]):
    """Authenticate requests carrying ``Authorization: Bearer <access token>``."""

    def __init__(self, provider: OIDCProvider, identities: IdentityService):
        """
        Initialize bearer token verifier.

        Args:
            provider: Provider used to verify token signatures and claims.
            identities: Identity resolution over the request's session.
        """
        self.provider = provider
        self.identities = identities

    @staticmethod
    def extract_token(authorization: str | None) -> str:
        """
        Extract the token from an Authorization header value.

        Raises:
            UnauthorizedError: If the header is missing or not a bearer token.
        """
        scheme, token = get_authorization_scheme_param(authorization)
        if not authorization or scheme.lower() != "bearer" or not token:
            raise UnauthorizedError("No token provided")
        return token

    async def verify(self, connection: HTTPConnection) -> User:
        token = self.extract_token(connection.headers.get("Authorization"))

        try:
            claims = await self.provider.verify_access_token(token)
        except ValueError as e:
            logger.debug("Bearer token rejected", extra={"reason": str(e)})
            raise UnauthorizedError("Invalid or expired token") from e

        subject = claims.get("sub")
        # Access tokens carry ``username``; ``email`` only when scoped in
        email = claims.get("email") or claims.get("username")
        if not subject or not email:
            raise UnauthorizedError("Invalid token payload")

        try:
            user = await self.identities.resolve_provider_identity(
                subject,
                normalize_email(email),
                first_name=claims.get("given_name") or claims.get("name") or "User",
                last_name=claims.get("family_name") or "",
            )
        except UniqueConstraintError as e:
            await self.identities.store.rollback()
            raise UnauthorizedError("Invalid or expired token") from e
        self.identities.ensure_active(user)
        await self.identities.store.commit()
        return user
