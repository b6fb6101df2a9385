"""
Authentication and mail configuration.

This module provides configuration settings for the hosted identity provider,
the passwordless flows and outbound mail, loaded from environment variables.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# Find .env file in project root
_env_file = Path(__file__).parent.parent.parent.parent.parent / ".env"


class AuthProviderConfig(BaseSettings):
    """
    Identity provider and passwordless configuration from environment variables.

    All settings are prefixed with AUTH_ in environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=str(_env_file) if _env_file.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Hosted identity provider (Amazon Cognito user pool)
    cognito_region: str = ""
    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    cognito_client_secret: str = ""
    cognito_domain: str = ""  # Hosted UI domain, e.g. "myapp.auth.us-east-1.amazoncognito.com"
    cognito_redirect_uri: str = ""  # e.g. "http://localhost:3000/api/auth/oidc/callback"
    cognito_logout_uri: str = ""  # Where the provider sends the browser after logout

    # AWS credentials (optional, boto3 default credential chain otherwise)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""

    # OIDC
    oidc_scopes: str = "openid email phone"  # Space-separated scopes
    oidc_jwks_cache_ttl_seconds: int = 86400
    oidc_http_timeout_seconds: float = 10.0

    # Passwordless
    otp_expiry_minutes: int = 10
    magic_link_expiry_hours: int = 1

    @property
    def issuer(self) -> str:
        """Issuer URL derived from the user pool region and identifier."""
        return (
            f"https://cognito-idp.{self.cognito_region}.amazonaws.com/{self.cognito_user_pool_id}"
        )

    @property
    def discovery_url(self) -> str:
        return f"{self.issuer}/.well-known/openid-configuration"

    def require_provider_settings(self) -> None:
        """
        Ensure the identity provider is configured.

        Raises:
            ConfigurationError: If a required setting is empty.
        """
        required = {
            "AUTH_COGNITO_REGION": self.cognito_region,
            "AUTH_COGNITO_USER_POOL_ID": self.cognito_user_pool_id,
            "AUTH_COGNITO_CLIENT_ID": self.cognito_client_id,
            "AUTH_COGNITO_DOMAIN": self.cognito_domain,
            "AUTH_COGNITO_REDIRECT_URI": self.cognito_redirect_uri,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required identity provider configuration: {', '.join(missing)}"
            )


class MailConfig(BaseSettings):
    """
    Outbound mail configuration from environment variables.

    All settings are prefixed with MAIL_ in environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=str(_env_file) if _env_file.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sender: str = "noreply@example.com"
    ses_region: str = "us-east-1"
    product_name: str = "File Management System"


# Global instances
auth_provider_config = AuthProviderConfig()
mail_config = MailConfig()
