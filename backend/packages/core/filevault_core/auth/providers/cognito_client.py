"""
Hosted credential client.

Wraps the Amazon Cognito identity provider API (sign-up, password login,
confirmation, refresh, user lookup). The boto3 client is synchronous, so each
call runs in a worker thread to keep the event loop free.
"""

import asyncio
import base64
import hashlib
import hmac
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filevault_core import get_logger
from filevault_core.config import AuthProviderConfig

from .base import ProviderError, TokenSet

logger = get_logger(__name__)


class CognitoIdentityClient:
    """Credential primitives of the hosted identity provider."""

    def __init__(self, settings: AuthProviderConfig, client: Any | None = None) -> None:
        """
        Initialize the credential client.

        Args:
            settings: Identity provider configuration.
            client: Pre-built boto3 ``cognito-idp`` client (optional).
        """
        self.client_id = settings.cognito_client_id
        self.client_secret = settings.cognito_client_secret
        if client is None:
            credentials: dict[str, str] = {}
            if settings.aws_access_key_id and settings.aws_secret_access_key:
                credentials = {
                    "aws_access_key_id": settings.aws_access_key_id,
                    "aws_secret_access_key": settings.aws_secret_access_key,
                }
            client = boto3.client(
                "cognito-idp", region_name=settings.cognito_region or None, **credentials
            )
        self._client = client

    def _secret_hash(self, username: str) -> str:
        """SECRET_HASH parameter required when the app client has a secret."""
        digest = hmac.new(
            self.client_secret.encode("utf-8"),
            (username + self.client_id).encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("utf-8")

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "Unknown")
            logger.info(
                "Identity provider rejected request",
                extra={"operation": operation, "code": code},
            )
            raise ProviderError(code, error.get("Message", "")) from e
        except BotoCoreError as e:
            logger.exception("Identity provider call failed", extra={"operation": operation})
            raise ProviderError("ProviderUnavailable", str(e)) from e

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> dict[str, Any]:
        """
        Create an account at the provider.

        Returns:
            Dict with ``user_sub`` and ``user_confirmed``.
        """
        params: dict[str, Any] = {
            "ClientId": self.client_id,
            "Username": email,
            "Password": password,
            "UserAttributes": [
                {"Name": "email", "Value": email},
                {"Name": "given_name", "Value": first_name},
                {"Name": "family_name", "Value": last_name},
            ],
        }
        if self.client_secret:
            params["SecretHash"] = self._secret_hash(email)

        response = await self._call("sign_up", **params)
        return {
            "user_sub": response["UserSub"],
            "user_confirmed": bool(response.get("UserConfirmed", False)),
        }

    async def authenticate_password(self, email: str, password: str) -> TokenSet:
        """Authenticate with email and password (USER_PASSWORD_AUTH)."""
        auth_parameters = {"USERNAME": email, "PASSWORD": password}
        if self.client_secret:
            auth_parameters["SECRET_HASH"] = self._secret_hash(email)

        response = await self._call(
            "initiate_auth",
            AuthFlow="USER_PASSWORD_AUTH",
            ClientId=self.client_id,
            AuthParameters=auth_parameters,
        )
        return self._token_set(response)

    async def refresh(self, refresh_token: str, username: str | None = None) -> TokenSet:
        """
        Exchange a refresh token for new access and ID tokens.

        Args:
            refresh_token: Provider refresh token.
            username: Provider username, needed for SECRET_HASH when the app
                client has a secret.
        """
        auth_parameters = {"REFRESH_TOKEN": refresh_token}
        if self.client_secret and username:
            auth_parameters["SECRET_HASH"] = self._secret_hash(username)

        response = await self._call(
            "initiate_auth",
            AuthFlow="REFRESH_TOKEN_AUTH",
            ClientId=self.client_id,
            AuthParameters=auth_parameters,
        )
        return self._token_set(response)

    async def confirm_sign_up(self, email: str, code: str) -> None:
        """Confirm an account with the emailed verification code."""
        params: dict[str, Any] = {
            "ClientId": self.client_id,
            "Username": email,
            "ConfirmationCode": code,
        }
        if self.client_secret:
            params["SecretHash"] = self._secret_hash(email)
        await self._call("confirm_sign_up", **params)

    async def get_user_attributes(self, access_token: str) -> dict[str, str]:
        """
        Get the attributes of the user owning an access token.

        Returns:
            Attribute name to value mapping (includes ``sub``).
        """
        response = await self._call("get_user", AccessToken=access_token)
        return {attr["Name"]: attr["Value"] for attr in response.get("UserAttributes", [])}

    @staticmethod
    def _token_set(response: dict[str, Any]) -> TokenSet:
        result = response.get("AuthenticationResult")
        if not result or not result.get("AccessToken"):
            # Challenges (MFA, new password) are not supported by this flow.
            raise ProviderError(
                response.get("ChallengeName") or "AuthenticationFailed",
                "Authentication did not complete",
            )
        return {
            "access_token": result["AccessToken"],
            "id_token": result.get("IdToken"),
            "refresh_token": result.get("RefreshToken"),
            "token_type": result.get("TokenType", "Bearer"),
            "expires_in": result.get("ExpiresIn"),
        }
