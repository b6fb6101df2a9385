"""
OIDC flow service.

Drives the browser redirect flow against the hosted identity provider. The
service never touches the raw session: it takes a ``SessionContext`` and
returns the context the router must persist.
"""

from filevault_core import get_logger
from filevault_core.auth.providers import OIDCProvider
from filevault_core.auth.session_context import SessionContext
from filevault_core.exceptions import UnauthorizedError
from filevault_core.schemas import AuthStatusResponse

logger = get_logger(__name__)


class OIDCService:
    """Login, callback, logout and status for the OIDC redirect flow."""

    def __init__(self, provider: OIDCProvider):
        self.provider = provider

    def login(self, context: SessionContext) -> tuple[str, SessionContext]:
        """
        Start a login attempt.

        Returns:
            Authorization URL and the context holding the new state/nonce pair.
        """
        state = self.provider.generate_state()
        nonce = self.provider.generate_nonce()
        url = self.provider.get_authorization_url(state, nonce)
        logger.info("[OIDC] Redirecting to provider")
        return url, context.with_redirect_checks(state, nonce)

    async def callback(
        self, code: str | None, state: str | None, context: SessionContext
    ) -> SessionContext:
        """
        Complete a login attempt.

        The state/nonce pair is single use; callers persist
        ``context.without_redirect_checks()`` when this raises.

        Returns:
            Authenticated context caching the user-info claims.

        Raises:
            UnauthorizedError: If any check, the code exchange or token
                verification fails.
        """
        try:
            result = await self.provider.exchange_code(
                code, state, context.state, context.nonce
            )
        except ValueError as e:
            logger.warning("[OIDC] Callback rejected", extra={"reason": str(e)})
            raise UnauthorizedError("OIDC login failed") from e

        logger.info("[OIDC] Login completed", extra={"sub": result["user_info"].get("sub")})
        return context.without_redirect_checks().authenticated(result["user_info"])

    def logout_url(self) -> str:
        return self.provider.get_logout_url()

    @staticmethod
    def status(context: SessionContext) -> AuthStatusResponse:
        return AuthStatusResponse(
            is_authenticated=context.is_authenticated, user_info=context.user_info
        )
