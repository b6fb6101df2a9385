"""Unit tests for the hosted credential client."""

import base64
import hashlib
import hmac
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from filevault_core.auth.providers import CognitoIdentityClient, ProviderError
from filevault_core.config import AuthProviderConfig


def _client(boto_client: MagicMock, secret: str = "") -> CognitoIdentityClient:
    settings = AuthProviderConfig(
        cognito_region="us-east-1",
        cognito_client_id="client-id",
        cognito_client_secret=secret,
    )
    return CognitoIdentityClient(settings, client=boto_client)


def _auth_result() -> dict:
    return {
        "AuthenticationResult": {
            "AccessToken": "access",
            "IdToken": "id",
            "RefreshToken": "refresh",
            "TokenType": "Bearer",
            "ExpiresIn": 3600,
        }
    }


def test_secret_hash_matches_provider_definition() -> None:
    client = _client(MagicMock(), secret="s3cret")
    expected = base64.b64encode(
        hmac.new(b"s3cret", b"jane@example.comclient-id", hashlib.sha256).digest()
    ).decode()

    assert client._secret_hash("jane@example.com") == expected


@pytest.mark.asyncio
async def test_sign_up_sends_attributes_and_secret_hash() -> None:
    boto_client = MagicMock()
    boto_client.sign_up.return_value = {"UserSub": "sub-1", "UserConfirmed": False}

    result = await _client(boto_client, secret="s3cret").sign_up(
        "jane@example.com", "pw", "Jane", "Doe"
    )

    assert result == {"user_sub": "sub-1", "user_confirmed": False}
    kwargs = boto_client.sign_up.call_args.kwargs
    assert {"Name": "given_name", "Value": "Jane"} in kwargs["UserAttributes"]
    assert "SecretHash" in kwargs


@pytest.mark.asyncio
async def test_public_client_omits_secret_hash() -> None:
    boto_client = MagicMock()
    boto_client.initiate_auth.return_value = _auth_result()

    tokens = await _client(boto_client).authenticate_password("jane@example.com", "pw")

    assert tokens["access_token"] == "access"
    assert tokens["refresh_token"] == "refresh"
    kwargs = boto_client.initiate_auth.call_args.kwargs
    assert kwargs["AuthFlow"] == "USER_PASSWORD_AUTH"
    assert "SECRET_HASH" not in kwargs["AuthParameters"]


@pytest.mark.asyncio
async def test_challenge_response_is_provider_error() -> None:
    boto_client = MagicMock()
    boto_client.initiate_auth.return_value = {"ChallengeName": "NEW_PASSWORD_REQUIRED"}

    with pytest.raises(ProviderError) as exc_info:
        await _client(boto_client).authenticate_password("jane@example.com", "pw")

    assert exc_info.value.code == "NEW_PASSWORD_REQUIRED"


@pytest.mark.asyncio
async def test_client_error_code_is_preserved() -> None:
    boto_client = MagicMock()
    boto_client.initiate_auth.side_effect = ClientError(
        {"Error": {"Code": "NotAuthorizedException", "Message": "Incorrect"}}, "InitiateAuth"
    )

    with pytest.raises(ProviderError) as exc_info:
        await _client(boto_client).refresh("refresh-token")

    assert exc_info.value.code == "NotAuthorizedException"


@pytest.mark.asyncio
async def test_transport_failure_is_provider_unavailable() -> None:
    boto_client = MagicMock()
    boto_client.get_user.side_effect = EndpointConnectionError(endpoint_url="https://cognito")

    with pytest.raises(ProviderError) as exc_info:
        await _client(boto_client).get_user_attributes("access")

    assert exc_info.value.code == "ProviderUnavailable"


@pytest.mark.asyncio
async def test_get_user_attributes_flattens_list() -> None:
    boto_client = MagicMock()
    boto_client.get_user.return_value = {
        "Username": "jane",
        "UserAttributes": [
            {"Name": "sub", "Value": "sub-1"},
            {"Name": "email", "Value": "jane@example.com"},
        ],
    }

    attributes = await _client(boto_client).get_user_attributes("access")

    assert attributes == {"sub": "sub-1", "email": "jane@example.com"}
