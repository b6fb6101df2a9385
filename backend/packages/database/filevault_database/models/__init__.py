"""
Database models package.

This module exports all SQLAlchemy models for the FileVault application.
"""

from .auth_token import AuthToken, AuthTokenType
from .base import Base, TimestampMixin
from .user import DEFAULT_STORAGE_QUOTA, User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "DEFAULT_STORAGE_QUOTA",
    "AuthToken",
    "AuthTokenType",
]
