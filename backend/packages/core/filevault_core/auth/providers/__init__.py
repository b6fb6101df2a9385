"""
Identity provider clients.

This package provides the OIDC redirect-flow client and the hosted
credential client for the identity provider.
"""

from .base import OIDCLoginResult, ProviderError, TokenSet
from .cognito_client import CognitoIdentityClient
from .oidc_provider import OIDCProvider

__all__ = [
    "CognitoIdentityClient",
    "OIDCLoginResult",
    "OIDCProvider",
    "ProviderError",
    "TokenSet",
]
