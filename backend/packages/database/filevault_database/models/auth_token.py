"""
Auth token model definition.

This module defines the AuthToken model for one-time credentials
(numeric OTP codes and magic-link tokens) issued to users.
"""

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, generate_uuid, utcnow

if TYPE_CHECKING:
    from .user import User


class AuthTokenType(StrEnum):
    """Kinds of one-time credentials."""

    OTP = "OTP"
    MAGIC_LINK = "MAGIC_LINK"


class AuthToken(Base):
    """
    One-time authentication credential.

    At most one unused, unexpired token of a given type is valid per user;
    issuing a new one marks the previous ones used.

    Attributes:
        id: Unique token identifier (UUID).
        user_id: Owner of the token (foreign key to users).
        type: Credential kind (OTP or MAGIC_LINK).
        token: The code or opaque token value.
        expires_at: Time after which the token can no longer be verified.
        is_used: Whether the token was consumed or superseded.
        created_at: Issuance time.
    """

    __tablename__ = "auth_tokens"
    __table_args__ = (Index("ix_auth_tokens_user_type_used", "user_id", "type", "is_used"),)

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Foreign key
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Credential
    type: Mapped[AuthTokenType] = mapped_column(
        Enum(AuthTokenType, name="auth_token_type"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Status
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="auth_tokens")
