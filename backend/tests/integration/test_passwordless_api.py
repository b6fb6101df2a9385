"""Integration tests for passwordless authentication endpoints."""

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

BASE = "/api/auth/passwordless"
FRONTEND_URL = "http://frontend.test"


def _token_from_link(url: str) -> str:
    return parse_qs(urlparse(url).query)["token"][0]


class TestOTP:
    """OTP send and verify endpoints."""

    @pytest.mark.asyncio
    async def test_send_otp(self, client: AsyncClient, fake_notifier):
        response = await client.post(f"{BASE}/send-otp", json={"email": "new.user@example.com"})

        assert response.status_code == 200
        assert response.json() == {"message": "OTP sent to your email"}
        assert fake_notifier.otp_emails[0]["to"] == "new.user@example.com"

    @pytest.mark.asyncio
    async def test_send_otp_invalid_email(self, client: AsyncClient):
        response = await client.post(f"{BASE}/send-otp", json={"email": "not-an-email"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_verify_otp_starts_session(self, client: AsyncClient, fake_notifier):
        await client.post(f"{BASE}/send-otp", json={"email": "new.user@example.com"})
        code = fake_notifier.otp_emails[-1]["code"]

        response = await client.post(
            f"{BASE}/verify-otp", json={"email": "new.user@example.com", "otp": code}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["user"]["email"] == "new.user@example.com"
        assert data["user"]["first_name"] == "new"
        assert "password_hash" not in data["user"]

        status = (await client.get(f"{BASE}/status")).json()
        assert status["is_authenticated"] is True
        assert status["user_info"]["email"] == "new.user@example.com"

        session_profile = await client.get("/api/users/me/session")
        assert session_profile.status_code == 200
        assert session_profile.json()["id"] == data["user"]["id"]

    @pytest.mark.asyncio
    async def test_verify_otp_is_single_use(self, client: AsyncClient, fake_notifier):
        await client.post(f"{BASE}/send-otp", json={"email": "jane@example.com"})
        payload = {"email": "jane@example.com", "otp": fake_notifier.otp_emails[-1]["code"]}

        first = await client.post(f"{BASE}/verify-otp", json=payload)
        second = await client.post(f"{BASE}/verify-otp", json=payload)

        assert first.status_code == 200
        assert second.status_code == 401
        assert second.json()["detail"] == "Invalid or expired OTP"

    @pytest.mark.asyncio
    async def test_verify_otp_wrong_code_and_unknown_email(
        self, client: AsyncClient, fake_notifier
    ):
        await client.post(f"{BASE}/send-otp", json={"email": "jane@example.com"})
        code = fake_notifier.otp_emails[-1]["code"]
        wrong = "100000" if code != "100000" else "100001"

        wrong_code = await client.post(
            f"{BASE}/verify-otp", json={"email": "jane@example.com", "otp": wrong}
        )
        unknown = await client.post(
            f"{BASE}/verify-otp", json={"email": "ghost@example.com", "otp": code}
        )

        assert wrong_code.status_code == unknown.status_code == 401
        assert wrong_code.json() == unknown.json()

        status = (await client.get(f"{BASE}/status")).json()
        assert status == {"is_authenticated": False, "user_info": None}

    @pytest.mark.asyncio
    async def test_delivery_failure_in_production_is_503(
        self, client: AsyncClient, fake_notifier, test_settings
    ):
        fake_notifier.fail = True
        test_settings.environment = "production"

        response = await client.post(f"{BASE}/send-otp", json={"email": "jane@example.com"})

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_delivery_failure_outside_production_is_acknowledged(
        self, client: AsyncClient, fake_notifier
    ):
        fake_notifier.fail = True

        response = await client.post(f"{BASE}/send-otp", json={"email": "jane@example.com"})

        assert response.status_code == 200


class TestMagicLink:
    """Magic-link send and browser verification endpoints."""

    @pytest.mark.asyncio
    async def test_magic_link_redirects_and_starts_session(
        self, client: AsyncClient, fake_notifier
    ):
        response = await client.post(
            f"{BASE}/send-magic-link", json={"email": "jane@example.com"}
        )
        assert response.json() == {"message": "Magic link sent to your email"}

        url = fake_notifier.magic_link_emails[-1]["url"]
        assert url.startswith(f"http://test{BASE}/verify-magic-link?token=")

        response = await client.get(
            f"{BASE}/verify-magic-link", params={"token": _token_from_link(url)}
        )

        assert response.status_code == 302
        assert response.headers["location"] == f"{FRONTEND_URL}?auth=success"
        status = (await client.get(f"{BASE}/status")).json()
        assert status["is_authenticated"] is True

    @pytest.mark.asyncio
    async def test_reused_link_redirects_with_failure(self, client: AsyncClient, fake_notifier):
        await client.post(f"{BASE}/send-magic-link", json={"email": "jane@example.com"})
        token = _token_from_link(fake_notifier.magic_link_emails[-1]["url"])

        await client.get(f"{BASE}/verify-magic-link", params={"token": token})
        response = await client.get(f"{BASE}/verify-magic-link", params={"token": token})

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert parse_qs(location.query) == {
            "auth": ["failed"],
            "error": ["Invalid or expired magic link"],
        }

    @pytest.mark.asyncio
    async def test_missing_token_redirects_with_failure(self, client: AsyncClient):
        response = await client.get(f"{BASE}/verify-magic-link")

        assert response.status_code == 302
        assert "auth=failed" in response.headers["location"]
