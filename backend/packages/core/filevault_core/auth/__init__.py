"""
Authentication primitives.

Provider clients live in ``filevault_core.auth.providers`` and request
verifiers in ``filevault_core.auth.verifiers``.
"""

from .locks import KeyedLock, token_issuance_lock
from .session_context import SessionContext
from .tokens import generate_opaque_token, generate_otp, magic_link_expiry, otp_expiry

__all__ = [
    "KeyedLock",
    "SessionContext",
    "generate_opaque_token",
    "generate_otp",
    "magic_link_expiry",
    "otp_expiry",
    "token_issuance_lock",
]
