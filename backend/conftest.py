"""Global pytest fixtures for testing."""

import contextlib
import secrets
import uuid
from collections.abc import AsyncGenerator, Generator
from typing import Any
from urllib.parse import urlencode

import dotenv
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from filevault_api.config import Settings
from filevault_api.main import create_app
from filevault_core.auth.providers import ProviderError, TokenSet
from filevault_core.exceptions import DeliveryError
from filevault_database import Base, IdentityStore
from filevault_database.models import User
from filevault_database.session import get_session

with contextlib.suppress(OSError):
    dotenv.load_dotenv()

TEST_DATABASE_URL = "sqlite+aiosqlite://"
FRONTEND_URL = "http://frontend.test"


class FakeNotifier:
    """Notification sender that records messages instead of sending them."""

    def __init__(self) -> None:
        self.otp_emails: list[dict[str, Any]] = []
        self.magic_link_emails: list[dict[str, Any]] = []
        self.fail = False

    async def send_otp_email(self, to: str, code: str, expiry_minutes: int) -> None:
        if self.fail:
            raise DeliveryError("Email delivery failed")
        self.otp_emails.append({"to": to, "code": code, "expiry_minutes": expiry_minutes})

    async def send_magic_link_email(self, to: str, url: str, expiry_hours: int) -> None:
        if self.fail:
            raise DeliveryError("Email delivery failed")
        self.magic_link_emails.append({"to": to, "url": url, "expiry_hours": expiry_hours})


class FakeOIDCProvider:
    """In-memory stand-in for the hosted OIDC provider."""

    client_id = "test-client"
    authorization_endpoint = "https://auth.example.com/oauth2/authorize"

    def __init__(self) -> None:
        self.user_info: dict[str, Any] = {
            "sub": "provider-sub-1",
            "email": "oidc.user@example.com",
            "email_verified": "true",
        }
        self.access_tokens: dict[str, dict[str, Any]] = {}
        self.valid_codes: set[str] = {"valid-code"}
        self.exchange_calls: list[dict[str, Any]] = []

    @staticmethod
    def generate_state() -> str:
        return secrets.token_urlsafe(16)

    @staticmethod
    def generate_nonce() -> str:
        return secrets.token_urlsafe(16)

    def get_authorization_url(self, state: str, nonce: str) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "scope": "openid email phone",
            "state": state,
            "nonce": nonce,
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    def get_logout_url(self) -> str:
        return f"https://auth.example.com/logout?client_id={self.client_id}"

    async def exchange_code(
        self,
        code: str | None,
        state: str | None,
        expected_state: str | None,
        expected_nonce: str | None,
    ) -> dict[str, Any]:
        self.exchange_calls.append(
            {"code": code, "state": state, "expected_state": expected_state, "nonce": expected_nonce}
        )
        if not code:
            raise ValueError("Authorization code is required")
        if not state or not expected_state or state != expected_state:
            raise ValueError("State mismatch - possible CSRF attack")
        if not expected_nonce:
            raise ValueError("Nonce is required for token verification")
        if code not in self.valid_codes:
            raise ValueError("Token exchange failed (status=400)")
        return {
            "tokens": {"access_token": "access", "id_token": "id", "token_type": "Bearer"},
            "id_claims": {"sub": self.user_info["sub"], "nonce": expected_nonce},
            "user_info": dict(self.user_info),
        }

    async def verify_access_token(self, token: str) -> dict[str, Any]:
        if token not in self.access_tokens:
            raise ValueError("Token verification failed")
        return self.access_tokens[token]

    def issue_access_token(self, claims: dict[str, Any]) -> str:
        """Register claims and return a bearer token that verifies to them."""
        token = f"access-{uuid.uuid4().hex}"
        self.access_tokens[token] = {"token_use": "access", "client_id": self.client_id, **claims}
        return token


class FakeCognitoClient:
    """In-memory stand-in for the hosted credential API."""

    CONFIRMATION_CODE = "123456"

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.errors: dict[str, ProviderError] = {}

    def _raise_if_configured(self, operation: str) -> None:
        if operation in self.errors:
            raise self.errors[operation]

    def add_account(
        self,
        email: str,
        password: str,
        *,
        confirmed: bool = True,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> str:
        sub = str(uuid.uuid4())
        self.accounts[email] = {
            "sub": sub,
            "password": password,
            "confirmed": confirmed,
            "given_name": first_name,
            "family_name": last_name,
        }
        return sub

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> dict[str, Any]:
        self._raise_if_configured("sign_up")
        if email in self.accounts:
            raise ProviderError("UsernameExistsException", "User already exists")
        sub = self.add_account(
            email, password, confirmed=False, first_name=first_name, last_name=last_name
        )
        return {"user_sub": sub, "user_confirmed": False}

    async def authenticate_password(self, email: str, password: str) -> TokenSet:
        self._raise_if_configured("authenticate_password")
        account = self.accounts.get(email)
        if account is None:
            raise ProviderError("UserNotFoundException", "User does not exist.")
        if account["password"] != password:
            raise ProviderError("NotAuthorizedException", "Incorrect username or password.")
        if not account["confirmed"]:
            raise ProviderError("UserNotConfirmedException", "User is not confirmed.")
        refresh_token = f"refresh-{account['sub']}"
        self.refresh_tokens[refresh_token] = email
        return {
            "access_token": f"access-{account['sub']}",
            "id_token": f"id-{account['sub']}",
            "refresh_token": refresh_token,
            "token_type": "Bearer",
            "expires_in": 3600,
        }

    async def get_user_attributes(self, access_token: str) -> dict[str, str]:
        self._raise_if_configured("get_user_attributes")
        for email, account in self.accounts.items():
            if access_token == f"access-{account['sub']}":
                return {
                    "sub": account["sub"],
                    "email": email,
                    "given_name": account["given_name"],
                    "family_name": account["family_name"],
                }
        raise ProviderError("NotAuthorizedException", "Invalid Access Token")

    async def confirm_sign_up(self, email: str, code: str) -> None:
        self._raise_if_configured("confirm_sign_up")
        account = self.accounts.get(email)
        if account is None:
            raise ProviderError("UserNotFoundException", "User does not exist.")
        if code != self.CONFIRMATION_CODE:
            raise ProviderError("CodeMismatchException", "Invalid verification code provided.")
        account["confirmed"] = True

    async def refresh(self, refresh_token: str, username: str | None = None) -> TokenSet:
        self._raise_if_configured("refresh")
        email = self.refresh_tokens.get(refresh_token)
        if email is None:
            raise ProviderError("NotAuthorizedException", "Invalid Refresh Token")
        sub = self.accounts[email]["sub"]
        return {
            "access_token": f"access-{sub}",
            "id_token": f"id-{sub}",
            "token_type": "Bearer",
            "expires_in": 3600,
        }


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # One shared connection keeps the in-memory database alive
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async_session = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> IdentityStore:
    return IdentityStore(db_session)


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def fake_oidc_provider() -> FakeOIDCProvider:
    return FakeOIDCProvider()


@pytest.fixture
def fake_cognito() -> FakeCognitoClient:
    return FakeCognitoClient()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        secret_key="test-secret-key",
        database_url=TEST_DATABASE_URL,
        frontend_url=FRONTEND_URL,
        public_base_url="http://test",
        cors_origins=[FRONTEND_URL],
    )


@pytest.fixture
def app(
    db_session: AsyncSession,
    test_settings: Settings,
    fake_notifier: FakeNotifier,
    fake_oidc_provider: FakeOIDCProvider,
    fake_cognito: FakeCognitoClient,
) -> Generator[FastAPI, None, None]:
    """Create an application with database and provider overrides."""
    app = create_app(settings=test_settings)

    # ASGITransport does not run the lifespan; install collaborators directly
    app.state.oidc_provider = fake_oidc_provider
    app.state.cognito_client = fake_cognito
    app.state.notifier = fake_notifier

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def test_user(store: IdentityStore) -> User:
    """Create a test user."""
    user = await store.create_user(
        email="test@example.com", first_name="Test", last_name="User"
    )
    await store.commit()
    return user
