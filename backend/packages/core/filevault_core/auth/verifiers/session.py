"""
Browser session verification.
"""

from typing import Any

from starlette.requests import HTTPConnection

from filevault_core.auth.session_context import SessionContext
from filevault_core.exceptions import UnauthorizedError

from .base import Verifier


class SessionVerifier(Verifier[dict[str, Any]]):
    """Authenticate requests by the user-info cached in the signed session."""

    async def verify(self, connection: HTTPConnection) -> dict[str, Any]:
        context = SessionContext.from_session(connection.session)
        if not context.is_authenticated:
            raise UnauthorizedError("Not authenticated")
        return context.user_info
