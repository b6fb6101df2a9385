"""
API routers.
"""

from . import auth, oidc, passwordless, users

__all__ = ["auth", "oidc", "passwordless", "users"]
