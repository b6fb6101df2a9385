"""
User model definition.

This module defines the User model, the identity record shared by every
authentication flow as well as the files, folders and sharing components.
"""

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from .auth_token import AuthToken

DEFAULT_STORAGE_QUOTA = 5 * 1024 * 1024 * 1024  # 5 GiB


class User(Base, TimestampMixin):
    """
    User account model.

    Attributes:
        id: Unique user identifier (UUID).
        email: Email address, unique across all users.
        cognito_sub: Subject identifier at the hosted identity provider.
        first_name: Given name.
        last_name: Family name.
        password_hash: Local password hash (null for provider-managed
            or passwordless-only accounts).
        is_active: Whether the account may authenticate.
        storage_used: Bytes currently stored by the user.
        storage_quota: Storage allowance in bytes.
    """

    __tablename__ = "users"

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Identity
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    cognito_sub: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Credentials
    password_hash: Mapped[str | None] = mapped_column(String(255))

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Storage accounting
    storage_used: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    storage_quota: Mapped[int] = mapped_column(
        BigInteger, default=DEFAULT_STORAGE_QUOTA, nullable=False
    )

    # Relationships
    auth_tokens: Mapped[list["AuthToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
