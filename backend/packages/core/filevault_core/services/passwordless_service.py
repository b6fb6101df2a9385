"""
Passwordless authentication service.

Issues, delivers and verifies one-time passcodes and magic links.
"""

from datetime import UTC, datetime
from urllib.parse import urlencode

from filevault_core import get_logger
from filevault_core.auth.locks import KeyedLock, token_issuance_lock
from filevault_core.auth.tokens import (
    generate_opaque_token,
    generate_otp,
    magic_link_expiry,
    otp_expiry,
)
from filevault_core.config import AuthProviderConfig, auth_provider_config
from filevault_core.exceptions import ConfigurationError, DeliveryError, UnauthorizedError
from filevault_core.schemas import MessageResponse, PasswordlessAuthResult, UserResponse
from filevault_database import IdentityStore
from filevault_database.models import AuthTokenType, User

from .identity_service import IdentityService, normalize_email
from .notification_service import NotificationSender

logger = get_logger(__name__)
# Receives one-time credentials when mail delivery fails outside production
diagnostics = get_logger("filevault.diagnostics")

OTP_SENT_MESSAGE = "OTP sent to your email"
MAGIC_LINK_SENT_MESSAGE = "Magic link sent to your email"
INVALID_OTP_MESSAGE = "Invalid or expired OTP"
INVALID_MAGIC_LINK_MESSAGE = "Invalid or expired magic link"


class PasswordlessService:
    """OTP and magic-link flows."""

    def __init__(
        self,
        store: IdentityStore,
        notifier: NotificationSender | None = None,
        *,
        magic_link_url: str = "",
        is_production: bool = False,
        config: AuthProviderConfig | None = None,
        lock: KeyedLock | None = None,
    ):
        """
        Initialize passwordless service.

        Args:
            store: Identity store.
            notifier: Delivery channel for codes and links. Only the send
                operations need one.
            magic_link_url: Absolute URL of the magic-link verification endpoint.
            is_production: Whether delivery failures must surface to the caller.
            config: Expiry settings (defaults to the global auth config).
            lock: Issuance lock (defaults to the process-wide lock).
        """
        self.store = store
        self.identities = IdentityService(store)
        self.notifier = notifier
        self.magic_link_url = magic_link_url
        self.is_production = is_production
        self.config = config or auth_provider_config
        self.lock = lock or token_issuance_lock

    async def send_otp(self, email: str) -> MessageResponse:
        """
        Issue a fresh OTP for an email and deliver it.

        Creates the user on first contact. The acknowledgment is the same
        whether or not the email was already known.

        Raises:
            DeliveryError: In production, if the code could not be delivered.
            ConfigurationError: If the service has no notification sender.
        """
        notifier = self._require_notifier()
        email = normalize_email(email)
        user = await self.identities.find_or_create_passwordless(email)
        if not user.is_active:
            await self.store.commit()
            logger.info("OTP not issued for inactive user", extra={"user_id": user.id})
            return MessageResponse(message=OTP_SENT_MESSAGE)

        code = generate_otp()
        minutes = self.config.otp_expiry_minutes
        await self._issue(user, AuthTokenType.OTP, code, otp_expiry(minutes))

        try:
            await notifier.send_otp_email(email, code, minutes)
        except DeliveryError:
            if self.is_production:
                raise
            diagnostics.warning(
                "OTP email not delivered",
                extra={"email": email, "otp": code, "expires_in_minutes": minutes},
            )

        logger.info("OTP issued", extra={"user_id": user.id})
        return MessageResponse(message=OTP_SENT_MESSAGE)

    async def verify_otp(self, email: str, code: str) -> PasswordlessAuthResult:
        """
        Verify an OTP and consume it.

        Raises:
            UnauthorizedError: If the code is wrong, expired, already used, or
                the account is unknown or inactive.
        """
        email = normalize_email(email)
        user = await self.store.get_user_by_email(email)
        if user is None:
            raise UnauthorizedError(INVALID_OTP_MESSAGE)

        auth_token = await self.store.find_active_token(
            user.id, AuthTokenType.OTP, code.strip(), datetime.now(UTC)
        )
        if auth_token is None or not user.is_active:
            raise UnauthorizedError(INVALID_OTP_MESSAGE)

        return await self._complete(user, auth_token.id, INVALID_OTP_MESSAGE)

    async def send_magic_link(self, email: str) -> MessageResponse:
        """
        Issue a fresh magic link for an email and deliver it.

        Raises:
            DeliveryError: In production, if the link could not be delivered.
            ConfigurationError: If the service has no notification sender.
        """
        notifier = self._require_notifier()
        email = normalize_email(email)
        user = await self.identities.find_or_create_passwordless(email)
        if not user.is_active:
            await self.store.commit()
            logger.info("Magic link not issued for inactive user", extra={"user_id": user.id})
            return MessageResponse(message=MAGIC_LINK_SENT_MESSAGE)

        token = generate_opaque_token()
        hours = self.config.magic_link_expiry_hours
        await self._issue(user, AuthTokenType.MAGIC_LINK, token, magic_link_expiry(hours))

        link = f"{self.magic_link_url}?{urlencode({'token': token})}"
        try:
            await notifier.send_magic_link_email(email, link, hours)
        except DeliveryError:
            if self.is_production:
                raise
            diagnostics.warning(
                "Magic link email not delivered",
                extra={"email": email, "magic_link": link, "expires_in_hours": hours},
            )

        logger.info("Magic link issued", extra={"user_id": user.id})
        return MessageResponse(message=MAGIC_LINK_SENT_MESSAGE)

    async def verify_magic_link(self, token: str) -> PasswordlessAuthResult:
        """
        Verify a magic-link token and consume it.

        Raises:
            UnauthorizedError: If the token is unknown, expired, already used,
                or its owner is inactive.
        """
        auth_token = await self.store.find_active_token_by_value(
            token, AuthTokenType.MAGIC_LINK, datetime.now(UTC)
        )
        if auth_token is None or not auth_token.user.is_active:
            raise UnauthorizedError(INVALID_MAGIC_LINK_MESSAGE)

        return await self._complete(auth_token.user, auth_token.id, INVALID_MAGIC_LINK_MESSAGE)

    async def cleanup_expired_tokens(self) -> int:
        """
        Delete expired tokens, used or not.

        Returns:
            Number of tokens deleted.
        """
        deleted = await self.store.delete_expired_tokens(datetime.now(UTC))
        await self.store.commit()
        logger.info("Expired auth tokens cleaned up", extra={"deleted": deleted})
        return deleted

    def _require_notifier(self) -> NotificationSender:
        if self.notifier is None:
            raise ConfigurationError("Notification sender is not configured")
        return self.notifier

    async def _issue(
        self, user: User, token_type: AuthTokenType, value: str, expires_at: datetime
    ) -> None:
        # Invalidate and issue under one lock so at most one token stays live
        async with self.lock.hold((user.id, token_type)):
            invalidated = await self.store.invalidate_tokens(user.id, token_type)
            await self.store.create_token(user.id, token_type, value, expires_at)
            await self.store.commit()

        if invalidated:
            logger.debug(
                "Superseded outstanding tokens",
                extra={"user_id": user.id, "type": token_type.value, "count": invalidated},
            )

    async def _complete(
        self, user: User, token_id: str, failure_message: str
    ) -> PasswordlessAuthResult:
        # Conditional update; only one concurrent verifier wins
        if not await self.store.consume_token(token_id):
            await self.store.rollback()
            raise UnauthorizedError(failure_message)
        await self.store.commit()

        logger.info("Passwordless login verified", extra={"user_id": user.id})
        return PasswordlessAuthResult(
            user=UserResponse.model_validate(user),
            session_token=generate_opaque_token(),
        )
