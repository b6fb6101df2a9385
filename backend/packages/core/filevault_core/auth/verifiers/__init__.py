"""
Request verifiers for protected routes.
"""

from .base import Verifier
from .bearer import BearerTokenVerifier
from .session import SessionVerifier

__all__ = ["BearerTokenVerifier", "SessionVerifier", "Verifier"]
