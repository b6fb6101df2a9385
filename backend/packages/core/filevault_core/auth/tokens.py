"""
One-time credential generation.

Pure generation functions for OTP codes, opaque tokens and their expiry
timestamps. Nothing here touches storage.
"""

import secrets
from datetime import UTC, datetime, timedelta

OTP_MIN = 100000
OTP_MAX = 999999
OPAQUE_TOKEN_BYTES = 32  # 256 bits


def generate_otp() -> str:
    """
    Generate a 6-digit numeric one-time code.

    Drawn uniformly from 100000-999999 using the OS CSPRNG.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_opaque_token() -> str:
    """
    Generate a 256-bit opaque token as a 64-character hex string.

    Used for magic links and post-verification session handles.
    """
    return secrets.token_hex(OPAQUE_TOKEN_BYTES)


def otp_expiry(minutes: int, now: datetime | None = None) -> datetime:
    """Expiry timestamp for an OTP issued at ``now``."""
    return (now or datetime.now(UTC)) + timedelta(minutes=minutes)


def magic_link_expiry(hours: int, now: datetime | None = None) -> datetime:
    """Expiry timestamp for a magic link issued at ``now``."""
    return (now or datetime.now(UTC)) + timedelta(hours=hours)
