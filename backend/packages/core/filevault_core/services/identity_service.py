"""
Identity service.

Resolves, provisions and links the local identity record that every
authentication flow converges on.
"""

from filevault_core import get_logger
from filevault_core.exceptions import UnauthorizedError
from filevault_database import IdentityStore, UniqueConstraintError
from filevault_database.models import User

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    """Canonical form used for identity lookups."""
    return email.strip().lower()


def names_from_email(email: str) -> tuple[str, str]:
    """
    Derive first and last name from the email local part.

    ``new.user@example.com`` becomes ``("new", "user")``.
    """
    first_name, *last_name_parts = email.split("@")[0].split(".")
    return first_name or "User", " ".join(last_name_parts) or "Name"


class IdentityService:
    """Identity resolution shared by the authentication flows."""

    def __init__(self, store: IdentityStore):
        """
        Initialize identity service.

        Args:
            store: Identity store.
        """
        self.store = store

    async def find_or_create_passwordless(self, email: str) -> User:
        """
        Get the user for an email, creating a passwordless account if absent.

        Args:
            email: Normalized email address.

        Returns:
            Existing or newly created user (flushed, not committed).
        """
        user = await self.store.get_user_by_email(email)
        if user is not None:
            return user

        first_name, last_name = names_from_email(email)
        try:
            user = await self.store.create_user(
                email=email, first_name=first_name, last_name=last_name
            )
        except UniqueConstraintError:
            # A concurrent first contact created the record
            user = await self.store.get_user_by_email(email)
            if user is None:
                raise
            return user

        logger.info("Created passwordless user", extra={"user_id": user.id})
        return user

    async def resolve_provider_identity(
        self,
        subject: str,
        email: str | None,
        first_name: str = "User",
        last_name: str = "",
    ) -> User:
        """
        Resolve the local user for an identity-provider subject.

        Looks up by subject, then by email (linking the subject onto that
        record), and finally provisions a new user.

        Raises:
            UnauthorizedError: If the email already belongs to a record linked
                to a different subject, or there is no email to provision with.
        """
        user = await self.store.get_user_by_provider_subject(subject)
        if user is not None:
            return user

        if email:
            user = await self.store.get_user_by_email(email)
            if user is not None:
                return await self._link_subject(user, subject)

        if not email:
            raise UnauthorizedError("Invalid token payload")

        try:
            user = await self.store.create_user(
                email=email,
                first_name=first_name,
                last_name=last_name,
                cognito_sub=subject,
            )
        except UniqueConstraintError:
            # Lost a race with a concurrent request for the same identity
            user = await self.store.get_user_by_provider_subject(subject)
            if user is None:
                raise
            return user

        logger.info("Provisioned user from identity provider", extra={"user_id": user.id})
        return user

    async def _link_subject(self, user: User, subject: str) -> User:
        if user.cognito_sub is not None and user.cognito_sub != subject:
            logger.warning(
                "Email already linked to a different provider subject",
                extra={"user_id": user.id},
            )
            raise UnauthorizedError("Invalid or expired token")

        try:
            user = await self.store.link_provider_subject(user, subject)
        except UniqueConstraintError as e:
            raise UnauthorizedError("Invalid or expired token") from e

        logger.info("Linked provider subject to existing user", extra={"user_id": user.id})
        return user

    @staticmethod
    def ensure_active(user: User) -> None:
        """
        Raises:
            UnauthorizedError: If the account is deactivated.
        """
        if not user.is_active:
            raise UnauthorizedError("User account is inactive")
