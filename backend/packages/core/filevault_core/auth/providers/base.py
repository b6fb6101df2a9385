"""
Shared identity provider types.

This module defines the result shapes and error type used by the hosted
identity provider clients.
"""

from typing import Any, NotRequired, TypedDict


class ProviderError(ValueError):
    """
    Failure reported by the identity provider.

    Attributes:
        code: Provider error identifier (e.g. 'NotAuthorizedException').
    """

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code


class TokenSet(TypedDict):
    """Tokens issued by the provider after a successful authentication."""

    access_token: str
    id_token: NotRequired[str | None]
    refresh_token: NotRequired[str | None]
    token_type: NotRequired[str]
    expires_in: NotRequired[int | None]


class OIDCLoginResult(TypedDict):
    """Outcome of a completed authorization-code callback."""

    tokens: dict[str, Any]
    id_claims: dict[str, Any]
    user_info: dict[str, Any]
