"""
Request verifier interface.

A verifier turns an incoming HTTP connection into an authenticated principal
or raises ``UnauthorizedError``. Protected routes pick the verifier for their
credential kind (bearer token or browser session).
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from starlette.requests import HTTPConnection

PrincipalT = TypeVar("PrincipalT")


class Verifier(ABC, Generic[PrincipalT]):
    """Resolves the authenticated principal of a connection."""

    @abstractmethod
    async def verify(self, connection: HTTPConnection) -> PrincipalT:
        """
        Authenticate a connection.

        Raises:
            UnauthorizedError: If the connection carries no valid credential.
        """
