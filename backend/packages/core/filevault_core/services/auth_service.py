"""
Authentication service.

Handles registration, password login, sign-up confirmation and token refresh
against the hosted identity provider, keeping the local identity record in
step.
"""

from filevault_core import get_logger
from filevault_core.auth.providers import CognitoIdentityClient, ProviderError, TokenSet
from filevault_core.exceptions import (
    BadRequestError,
    ConflictError,
    FileVaultError,
    UnauthorizedError,
)
from filevault_core.schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from filevault_database import IdentityStore, UniqueConstraintError

from .identity_service import IdentityService, normalize_email

logger = get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


def _translate(error: ProviderError, mapping: dict[str, FileVaultError]) -> FileVaultError:
    """Map a provider error code onto the application taxonomy."""
    if error.code in mapping:
        return mapping[error.code]
    logger.error(
        "Identity provider request failed", extra={"code": error.code, "error": str(error)}
    )
    return FileVaultError("Identity provider request failed")


class AuthService:
    """Credential-based authentication service."""

    def __init__(self, store: IdentityStore, provider: CognitoIdentityClient):
        """
        Initialize authentication service.

        Args:
            store: Identity store.
            provider: Hosted identity provider client.
        """
        self.store = store
        self.identities = IdentityService(store)
        self.provider = provider

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        """
        Register a new account at the provider and locally.

        Raises:
            ConflictError: If the email is already registered.
            UnauthorizedError: If the password does not meet the policy.
        """
        email = normalize_email(request.email)
        if await self.store.get_user_by_email(email) is not None:
            raise ConflictError("User already exists")

        try:
            result = await self.provider.sign_up(
                email, request.password, request.first_name, request.last_name
            )
        except ProviderError as e:
            raise _translate(
                e,
                {
                    "UsernameExistsException": ConflictError("User already exists"),
                    "InvalidPasswordException": UnauthorizedError(
                        "Password does not meet requirements"
                    ),
                    "InvalidParameterException": BadRequestError("Invalid registration data"),
                },
            ) from e

        try:
            user = await self.store.create_user(
                email=email,
                first_name=request.first_name,
                last_name=request.last_name,
                cognito_sub=result["user_sub"],
            )
        except UniqueConstraintError as e:
            raise ConflictError("User already exists") from e
        await self.store.commit()

        logger.info("User registered", extra={"user_id": user.id})
        return RegisterResponse(
            message="User registered successfully. Please check your email for verification.",
            user=UserResponse.model_validate(user),
            user_confirmed=result["user_confirmed"],
        )

    async def login(self, request: LoginRequest) -> LoginResponse:
        """
        Authenticate with email and password.

        Raises:
            UnauthorizedError: If the credentials are wrong, the account is
                unconfirmed or the local account is inactive.
        """
        email = normalize_email(request.email)
        invalid = UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)
        try:
            tokens = await self.provider.authenticate_password(email, request.password)
            attributes = await self.provider.get_user_attributes(tokens["access_token"])
        except ProviderError as e:
            raise _translate(
                e,
                {
                    "NotAuthorizedException": invalid,
                    "UserNotFoundException": invalid,
                    "PasswordResetRequiredException": invalid,
                    "UserNotConfirmedException": UnauthorizedError(
                        "Please verify your email before logging in"
                    ),
                },
            ) from e

        subject = attributes.get("sub")
        if not subject:
            raise invalid

        user = await self.identities.resolve_provider_identity(
            subject,
            normalize_email(attributes.get("email") or email),
            first_name=attributes.get("given_name") or "User",
            last_name=attributes.get("family_name") or "",
        )
        self.identities.ensure_active(user)
        await self.store.commit()

        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResponse(user=UserResponse.model_validate(user), tokens=_tokens(tokens))

    async def confirm_sign_up(self, email: str, code: str) -> MessageResponse:
        """
        Confirm an account with the emailed verification code.

        Raises:
            UnauthorizedError: If the code is wrong or expired.
        """
        try:
            await self.provider.confirm_sign_up(normalize_email(email), code.strip())
        except ProviderError as e:
            raise _translate(
                e,
                {
                    "CodeMismatchException": UnauthorizedError("Invalid verification code"),
                    "ExpiredCodeException": UnauthorizedError("Verification code has expired"),
                    "UserNotFoundException": UnauthorizedError("Invalid verification code"),
                    "NotAuthorizedException": BadRequestError("User is already confirmed"),
                },
            ) from e

        return MessageResponse(message="Email confirmed successfully")

    async def refresh_token(self, refresh_token: str, username: str | None = None) -> TokenResponse:
        """
        Exchange a refresh token for new tokens.

        Raises:
            UnauthorizedError: If the refresh token is invalid or revoked.
        """
        try:
            tokens = await self.provider.refresh(
                refresh_token, normalize_email(username) if username else None
            )
        except ProviderError as e:
            raise _translate(
                e, {"NotAuthorizedException": UnauthorizedError("Invalid refresh token")}
            ) from e

        # The provider does not rotate refresh tokens on this flow
        if not tokens.get("refresh_token"):
            tokens["refresh_token"] = refresh_token
        return _tokens(tokens)


def _tokens(tokens: TokenSet) -> TokenResponse:
    return TokenResponse(
        access_token=tokens["access_token"],
        id_token=tokens.get("id_token"),
        refresh_token=tokens.get("refresh_token"),
        token_type=tokens.get("token_type") or "Bearer",
        expires_in=tokens.get("expires_in"),
    )
