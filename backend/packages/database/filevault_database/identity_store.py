"""
Identity store.

Repository over users and one-time auth tokens. Every authentication flow
reads and writes identities through this class instead of issuing queries
directly.
"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from .exceptions import RecordNotFoundError, UniqueConstraintError
from .models import AuthToken, AuthTokenType, User


class IdentityStore:
    """Transactional access to users and auth tokens."""

    def __init__(self, session: AsyncSession):
        """
        Initialize identity store.

        Args:
            session: Database session.
        """
        self.session = session

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        """Get user by primary key."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email address."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user_by_provider_subject(self, subject: str) -> User | None:
        """Get user by identity-provider subject identifier."""
        result = await self.session.execute(select(User).where(User.cognito_sub == subject))
        return result.scalar_one_or_none()

    async def require_user(self, user_id: str) -> User:
        """
        Get user by primary key, failing if absent.

        Raises:
            RecordNotFoundError: If no user has this id.
        """
        user = await self.get_user(user_id)
        if user is None:
            raise RecordNotFoundError(f"User {user_id} not found")
        return user

    async def create_user(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        cognito_sub: str | None = None,
        password_hash: str | None = None,
    ) -> User:
        """
        Create and flush a new user.

        Raises:
            UniqueConstraintError: If the email or subject is already taken.
        """
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            cognito_sub=cognito_sub,
            password_hash=password_hash,
            is_active=True,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise UniqueConstraintError("User with this email or subject already exists") from e
        return user

    async def link_provider_subject(self, user: User, subject: str) -> User:
        """
        Attach an identity-provider subject to an existing user.

        Raises:
            UniqueConstraintError: If the subject is linked to another user.
        """
        user.cognito_sub = subject
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise UniqueConstraintError("Provider subject already linked") from e
        return user

    # ------------------------------------------------------------------
    # Auth tokens
    # ------------------------------------------------------------------

    async def invalidate_tokens(self, user_id: str, token_type: AuthTokenType) -> int:
        """
        Mark every unused token of a type as used for a user.

        Returns:
            Number of tokens invalidated.
        """
        result = await self.session.execute(
            update(AuthToken)
            .where(
                AuthToken.user_id == user_id,
                AuthToken.type == token_type,
                AuthToken.is_used.is_(False),
            )
            .values(is_used=True)
        )
        return result.rowcount or 0

    async def create_token(
        self, user_id: str, token_type: AuthTokenType, token: str, expires_at: datetime
    ) -> AuthToken:
        """Create and flush a new unused token."""
        auth_token = AuthToken(
            user_id=user_id,
            type=token_type,
            token=token,
            expires_at=expires_at,
            is_used=False,
        )
        self.session.add(auth_token)
        await self.session.flush()
        return auth_token

    async def find_active_token(
        self, user_id: str, token_type: AuthTokenType, token: str, now: datetime
    ) -> AuthToken | None:
        """Find an unused, unexpired token of a user matching the value."""
        result = await self.session.execute(
            select(AuthToken)
            .where(
                AuthToken.user_id == user_id,
                AuthToken.type == token_type,
                AuthToken.token == token,
                AuthToken.is_used.is_(False),
                AuthToken.expires_at >= now,
            )
            .limit(1)
        )
        return result.scalars().first()

    async def find_active_token_by_value(
        self, token: str, token_type: AuthTokenType, now: datetime
    ) -> AuthToken | None:
        """Find an unused, unexpired token by exact value, with its owner loaded."""
        result = await self.session.execute(
            select(AuthToken)
            .options(joinedload(AuthToken.user))
            .where(
                AuthToken.token == token,
                AuthToken.type == token_type,
                AuthToken.is_used.is_(False),
                AuthToken.expires_at >= now,
            )
            .limit(1)
        )
        return result.scalars().first()

    async def consume_token(self, token_id: str) -> bool:
        """
        Mark a token used if it is still unused.

        Returns:
            True if this call consumed the token, False if it was already used.
        """
        result = await self.session.execute(
            update(AuthToken)
            .where(AuthToken.id == token_id, AuthToken.is_used.is_(False))
            .values(is_used=True)
        )
        return (result.rowcount or 0) == 1

    async def delete_expired_tokens(self, now: datetime) -> int:
        """
        Delete every token whose expiry has passed, used or not.

        Returns:
            Number of rows deleted.
        """
        result = await self.session.execute(delete(AuthToken).where(AuthToken.expires_at < now))
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
