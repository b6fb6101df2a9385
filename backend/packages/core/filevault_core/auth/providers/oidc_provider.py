"""
OpenID Connect (OIDC) provider client.

This module implements the authorization-code flow against the hosted
identity provider (an Amazon Cognito user pool): discovery, authorization URL
construction, code exchange with state/nonce checks, user-info retrieval,
logout URL construction and signed access-token verification.
"""

import hmac
from datetime import UTC, datetime
from secrets import token_urlsafe
from time import monotonic
from typing import Any, cast
from urllib.parse import urlencode, urlparse

import httpx
from jose import jwk, jwt
from jose.constants import ALGORITHMS
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError

from filevault_core import get_logger
from filevault_core.config import AuthProviderConfig
from filevault_core.exceptions import ConfigurationError

from .base import OIDCLoginResult

logger = get_logger(__name__)

# Allowed clock skew when checking iat/nbf
CLOCK_SKEW_SECONDS = 60


class OIDCProvider:
    """
    OpenID Connect client for the hosted identity provider.

    Discovery must complete through ``initialize()`` before any redirect,
    callback or token verification is served.
    """

    ALLOWED_SIGNING_ALGORITHMS = {
        ALGORITHMS.RS256,
        ALGORITHMS.RS384,
        ALGORITHMS.RS512,
        ALGORITHMS.ES256,
        ALGORITHMS.ES384,
        ALGORITHMS.ES512,
    }

    def __init__(self, config: dict[str, Any]) -> None:
        """
        Initialize OIDC provider.

        Args:
            config: Configuration dictionary with:
                - client_id: OAuth client ID
                - client_secret: OAuth client secret (optional for public clients)
                - issuer: OIDC issuer URL
                - redirect_uri: OAuth callback URL
                - logout_domain: Hosted UI domain serving the logout endpoint
                - logout_uri: Where the provider redirects after logout
                - scopes: List of OAuth scopes (default: ['openid', 'email', 'phone'])
                - discovery_url: OIDC discovery URL (optional, defaults to
                  {issuer}/.well-known/openid-configuration)
        """
        self.config = config
        self.client_id = config["client_id"]
        self.client_secret = config.get("client_secret") or ""
        self.issuer = config["issuer"].rstrip("/")
        self.redirect_uri = config["redirect_uri"]
        self.logout_domain = config.get("logout_domain", "")
        self.logout_uri = config.get("logout_uri", "")
        self.scopes = config.get("scopes", ["openid", "email", "phone"])
        self.discovery_url = config.get(
            "discovery_url", f"{self.issuer}/.well-known/openid-configuration"
        )
        self.jwks_cache_ttl_seconds = int(config.get("jwks_cache_ttl_seconds", 86400))
        self.http_timeout_seconds = float(config.get("http_timeout_seconds", 10.0))
        self._oidc_config: dict[str, Any] | None = None
        self._jwks: dict[str, Any] | None = None  # JWKS cache
        self._jwks_cached_at: float | None = None
        self._http_client: httpx.AsyncClient | None = None
        self._validate_url_security_constraints()

    @classmethod
    def from_settings(cls, settings: AuthProviderConfig) -> "OIDCProvider":
        """
        Build a provider from environment configuration.

        Raises:
            ConfigurationError: If required provider settings are missing.
        """
        settings.require_provider_settings()
        try:
            return cls(
                {
                    "client_id": settings.cognito_client_id,
                    "client_secret": settings.cognito_client_secret,
                    "issuer": settings.issuer,
                    "discovery_url": settings.discovery_url,
                    "redirect_uri": settings.cognito_redirect_uri,
                    "logout_domain": settings.cognito_domain,
                    "logout_uri": settings.cognito_logout_uri,
                    "scopes": settings.oidc_scopes.split(),
                    "jwks_cache_ttl_seconds": settings.oidc_jwks_cache_ttl_seconds,
                    "http_timeout_seconds": settings.oidc_http_timeout_seconds,
                }
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    @property
    def is_initialized(self) -> bool:
        return self._oidc_config is not None

    @staticmethod
    def generate_state() -> str:
        """Random CSRF state for one login attempt."""
        return token_urlsafe(32)

    @staticmethod
    def generate_nonce() -> str:
        """Random replay-protection nonce for one login attempt."""
        return token_urlsafe(32)

    @staticmethod
    def _sanitize_url_for_logs(url: str) -> str:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return "<invalid-url>"
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"

    @staticmethod
    def _validate_https_url(url: str, endpoint_name: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme.lower() != "https":
            raise ValueError(f"{endpoint_name} must use HTTPS")
        if not parsed.netloc:
            raise ValueError(f"{endpoint_name} must be an absolute URL")

    @staticmethod
    def _validate_same_domain(reference_url: str, target_url: str, endpoint_name: str) -> None:
        reference = urlparse(reference_url)
        target = urlparse(target_url)
        if not reference.netloc or not target.netloc:
            raise ValueError(f"{endpoint_name} must be an absolute URL")
        if reference.netloc.lower() != target.netloc.lower():
            raise ValueError(f"{endpoint_name} must use the issuer domain")

    def _validate_url_security_constraints(self) -> None:
        self._validate_https_url(self.issuer, "issuer")
        self._validate_https_url(self.discovery_url, "discovery_url")
        self._validate_same_domain(self.issuer, self.discovery_url, "discovery_url")

        if not self.discovery_url.startswith(f"{self.issuer}/"):
            raise ValueError("discovery_url must be derived from issuer")

    def _validate_discovery_config(self, config: dict[str, Any]) -> None:
        required_endpoints = (
            "authorization_endpoint",
            "token_endpoint",
            "userinfo_endpoint",
            "jwks_uri",
        )
        missing = [field for field in required_endpoints if not config.get(field)]
        if missing:
            raise ValueError(f"OIDC config missing required fields: {', '.join(missing)}")

        for field in required_endpoints:
            self._validate_https_url(str(config[field]), field)

        # Hosted UI endpoints live on their own domain; signing keys must not.
        self._validate_same_domain(self.issuer, str(config["jwks_uri"]), "jwks_uri")

    @staticmethod
    def _parse_json_response(response: httpx.Response, context: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise ValueError(f"Invalid JSON in {context}") from e

        if not isinstance(payload, dict):
            raise ValueError(f"Invalid {context}: expected JSON object")
        return cast(dict[str, Any], payload)

    @staticmethod
    def _validate_token_response(tokens: dict[str, Any]) -> None:
        required_fields = {"access_token", "id_token", "token_type"}
        missing = required_fields - tokens.keys()
        if missing:
            missing_fields = ", ".join(sorted(missing))
            raise ValueError(f"Token response missing required fields: {missing_fields}")

        token_type = str(tokens.get("token_type", "")).lower()
        if token_type != "bearer":
            raise ValueError("Unsupported token_type in token response")

    async def _get_http_client(self) -> httpx.AsyncClient:
        """
        Get or create a reusable HTTP client for OIDC network calls.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.http_timeout_seconds)
        return self._http_client

    async def initialize(self) -> None:
        """
        Perform provider discovery.

        Raises:
            ConfigurationError: If the discovery document cannot be fetched or
                is incomplete. Startup must abort on this error.
        """
        safe_url = self._sanitize_url_for_logs(self.discovery_url)
        logger.info("[OIDC] discovering issuer", extra={"discovery_url": safe_url})
        try:
            await self._get_oidc_config()
        except (httpx.HTTPError, ValueError) as e:
            raise ConfigurationError(f"OIDC discovery failed for {safe_url}: {e}") from e
        logger.info("[OIDC] client initialized", extra={"issuer": self.issuer})

    async def close(self) -> None:
        """Release the HTTP client and forget discovery state."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        self._oidc_config = None

    def _require_config(self) -> dict[str, Any]:
        if self._oidc_config is None:
            raise ValueError("OIDC provider not initialized")
        return self._oidc_config

    async def _get_oidc_config(self) -> dict[str, Any]:
        """
        Fetch OIDC discovery configuration.

        Returns:
            OIDC configuration dictionary.

        Raises:
            ValueError: If discovery endpoint fails.
        """
        if self._oidc_config is not None:
            return self._oidc_config

        client = await self._get_http_client()
        response = await client.get(self.discovery_url)

        if response.status_code != 200:
            safe_url = self._sanitize_url_for_logs(self.discovery_url)
            raise ValueError(
                f"Failed to fetch OIDC configuration from trusted endpoint: {safe_url}"
            )

        config = self._parse_json_response(response, "OIDC discovery response")
        self._validate_discovery_config(config)
        self._oidc_config = config
        return config

    def get_authorization_url(self, state: str, nonce: str) -> str:
        """
        Generate the provider authorization URL.

        Args:
            state: CSRF protection state parameter.
            nonce: Nonce value for replay attack prevention.

        Returns:
            Authorization URL to redirect the browser to.

        Raises:
            ValueError: If discovery has not completed.
        """
        if not state or not nonce:
            raise ValueError("State and nonce are required for OIDC authorization")

        oidc_config = self._require_config()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
            "nonce": nonce,
        }
        return f"{oidc_config['authorization_endpoint']}?{urlencode(params)}"

    def get_logout_url(self) -> str:
        """Provider logout URL clearing the hosted session."""
        params = {"client_id": self.client_id, "logout_uri": self.logout_uri}
        return f"https://{self.logout_domain}/logout?{urlencode(params)}"

    async def exchange_code(
        self,
        code: str | None,
        state: str | None,
        expected_state: str | None,
        expected_nonce: str | None,
    ) -> OIDCLoginResult:
        """
        Complete the authorization-code callback.

        Checks the returned state against the session copy, exchanges the code
        for tokens, verifies the ID token (including the nonce) and fetches
        the user-info claims.

        Args:
            code: Authorization code from the callback query.
            state: State from the callback query.
            expected_state: State stored in the session before redirecting.
            expected_nonce: Nonce stored in the session before redirecting.

        Returns:
            Tokens, verified ID token claims and user-info claims.

        Raises:
            ValueError: If any check, the exchange or verification fails.
        """
        if not code:
            raise ValueError("Authorization code is required")
        if not state or not expected_state:
            raise ValueError("State is required")
        if not hmac.compare_digest(state.encode(), expected_state.encode()):
            raise ValueError("State mismatch - possible CSRF attack")
        if not expected_nonce:
            raise ValueError("Nonce is required for token verification")

        oidc_config = self._require_config()

        client = await self._get_http_client()
        auth = (self.client_id, self.client_secret) if self.client_secret else None
        try:
            response = await client.post(
                oidc_config["token_endpoint"],
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "client_id": self.client_id,
                },
                auth=auth,
            )
        except httpx.HTTPError as e:
            raise ValueError("Token exchange request failed") from e

        if response.status_code != 200:
            raise ValueError(f"Token exchange failed (status={response.status_code})")

        tokens = self._parse_json_response(response, "token response")
        self._validate_token_response(tokens)

        id_claims = await self._verify_id_token(
            tokens["id_token"], oidc_config, expected_nonce, tokens.get("access_token")
        )
        user_info = await self.fetch_user_info(tokens["access_token"])

        if user_info.get("sub") != id_claims.get("sub"):
            raise ValueError("User info subject does not match ID token")

        return {"tokens": tokens, "id_claims": id_claims, "user_info": user_info}

    async def fetch_user_info(self, access_token: str) -> dict[str, Any]:
        """
        Fetch user-info claims for an access token.

        Raises:
            ValueError: If the provider rejects the request.
        """
        oidc_config = self._require_config()
        client = await self._get_http_client()
        try:
            response = await client.get(
                oidc_config["userinfo_endpoint"],
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise ValueError("User info request failed") from e
        if response.status_code != 200:
            raise ValueError(f"User info request failed (status={response.status_code})")
        return self._parse_json_response(response, "user info response")

    async def verify_access_token(self, token: str) -> dict[str, Any]:
        """
        Verify a provider-signed access token.

        Checks signature, issuer, expiry, ``token_use == "access"`` and the
        ``client_id`` claim.

        Returns:
            Decoded token claims.

        Raises:
            ValueError: If verification fails for any reason.
        """
        oidc_config = self._require_config()
        claims = await self._decode_signed_token(
            token, oidc_config, audience=None, access_token=None
        )
        if claims.get("token_use") != "access":
            raise ValueError("Token is not an access token")
        if claims.get("client_id") != self.client_id:
            raise ValueError("Token was issued to a different client")
        return claims

    async def _verify_id_token(
        self,
        id_token: str,
        oidc_config: dict[str, Any],
        nonce: str,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Verify and decode ID token with proper signature verification.

        This implementation follows OpenID Connect Core 1.0 specification:
        - Verifies JWT signature using JWKS from provider
        - Validates issuer, audience, expiration, not-before time
        - Validates nonce to prevent replay attacks

        Raises:
            ValueError: If token verification fails.

        References:
            OpenID Connect Core 1.0: https://openid.net/specs/openid-connect-core-1_0.html#IDTokenValidation
        """
        claims = await self._decode_signed_token(
            id_token, oidc_config, audience=self.client_id, access_token=access_token
        )

        # Validate nonce (prevents replay attacks)
        token_nonce = claims.get("nonce")
        if not isinstance(token_nonce, str) or not hmac.compare_digest(
            token_nonce.encode(), nonce.encode()
        ):
            raise ValueError("Nonce mismatch - possible replay attack")

        logger.info(
            "[OIDC] ID token verified successfully",
            extra={"sub": claims.get("sub"), "iss": claims.get("iss")},
        )
        return claims

    async def _resolve_signing_key(
        self, token: str, oidc_config: dict[str, Any]
    ) -> tuple[Any, str]:
        """Pick the JWKS key named by the token header, with its algorithm."""
        header = jwt.get_unverified_header(token)
        kid = header.get("kid")
        if not kid:
            raise ValueError("Token missing 'kid' in header")

        header_alg = header.get("alg")
        if header_alg and header_alg not in self.ALLOWED_SIGNING_ALGORITHMS:
            raise ValueError("Token uses an unsupported signing algorithm")

        jwks = await self._get_jwks(oidc_config)
        key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
        if key is None:
            raise ValueError(f"No matching key found for kid: {kid}")

        algorithm = key.get("alg") or header_alg
        if not algorithm:
            raise ValueError("Unable to determine signing algorithm for token")
        if algorithm not in self.ALLOWED_SIGNING_ALGORITHMS:
            raise ValueError("JWKS key uses an unsupported signing algorithm")
        if header_alg and algorithm != header_alg:
            raise ValueError("Token header algorithm does not match JWKS key algorithm")

        return jwk.construct(key), algorithm

    async def _decode_signed_token(
        self,
        token: str,
        oidc_config: dict[str, Any],
        audience: str | None,
        access_token: str | None,
    ) -> dict[str, Any]:
        try:
            public_key, algorithm = await self._resolve_signing_key(token, oidc_config)
            claims = jwt.decode(
                token,
                public_key,
                algorithms=[algorithm],
                audience=audience,
                issuer=self.issuer,
                access_token=access_token,
                options={
                    "verify_aud": audience is not None,
                    "require_exp": True,
                    "require_iat": True,
                },
            )
        except ExpiredSignatureError as e:
            raise ValueError("Token has expired") from e
        except JWTClaimsError as e:
            raise ValueError("Token claims validation failed") from e
        except JOSEError as e:
            raise ValueError("Token verification failed") from e

        now = datetime.now(UTC).timestamp()
        if claims.get("iat", 0) > now + CLOCK_SKEW_SECONDS:
            raise ValueError("Token issued in the future")
        if now < claims.get("nbf", 0) - CLOCK_SKEW_SECONDS:
            raise ValueError("Token not yet valid (nbf)")
        return claims

    async def _get_jwks(self, oidc_config: dict[str, Any]) -> dict[str, Any]:
        """
        Fetch JSON Web Key Set (JWKS) from provider.

        Raises:
            ValueError: If JWKS fetch fails.
        """
        if (
            self._jwks is not None
            and self._jwks_cached_at is not None
            and monotonic() - self._jwks_cached_at <= self.jwks_cache_ttl_seconds
        ):
            return self._jwks

        jwks_uri = oidc_config.get("jwks_uri")
        if not jwks_uri:
            raise ValueError("OIDC config missing 'jwks_uri'")
        jwks_uri = str(jwks_uri)
        self._validate_https_url(jwks_uri, "jwks_uri")
        self._validate_same_domain(self.issuer, jwks_uri, "jwks_uri")

        client = await self._get_http_client()
        try:
            response = await client.get(jwks_uri)
        except httpx.HTTPError as e:
            raise ValueError("Failed to fetch JWKS") from e

        if response.status_code != 200:
            safe_url = self._sanitize_url_for_logs(jwks_uri)
            raise ValueError(f"Failed to fetch JWKS from trusted endpoint: {safe_url}")

        jwks = self._parse_json_response(response, "JWKS response")
        self._jwks = jwks
        self._jwks_cached_at = monotonic()

        logger.debug(
            "[OIDC] JWKS fetched successfully",
            extra={"num_keys": len(jwks.get("keys", []))},
        )

        return jwks
