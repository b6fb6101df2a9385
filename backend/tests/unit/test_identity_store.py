"""Unit tests for the identity store."""

from datetime import UTC, datetime, timedelta

import pytest

from filevault_database import IdentityStore, RecordNotFoundError, UniqueConstraintError
from filevault_database.models import DEFAULT_STORAGE_QUOTA, AuthTokenType, User


def _now() -> datetime:
    return datetime.now(UTC)


class TestUsers:
    """User lookups and creation."""

    @pytest.mark.asyncio
    async def test_create_user_defaults(self, store: IdentityStore):
        user = await store.create_user(email="a@example.com", first_name="A", last_name="B")
        await store.commit()

        assert user.id
        assert user.is_active is True
        assert user.cognito_sub is None
        assert user.password_hash is None
        assert user.storage_used == 0
        assert user.storage_quota == DEFAULT_STORAGE_QUOTA

    @pytest.mark.asyncio
    async def test_lookup_by_email_and_subject(self, store: IdentityStore):
        user = await store.create_user(
            email="a@example.com", first_name="A", last_name="B", cognito_sub="sub-1"
        )
        await store.commit()

        assert (await store.get_user_by_email("a@example.com")).id == user.id
        assert (await store.get_user_by_provider_subject("sub-1")).id == user.id
        assert await store.get_user_by_email("missing@example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_email_raises_constraint_error(self, store: IdentityStore):
        await store.create_user(email="a@example.com", first_name="A", last_name="B")
        await store.commit()

        with pytest.raises(UniqueConstraintError):
            await store.create_user(email="a@example.com", first_name="C", last_name="D")

    @pytest.mark.asyncio
    async def test_require_user_raises_not_found(self, store: IdentityStore):
        with pytest.raises(RecordNotFoundError):
            await store.require_user("does-not-exist")

    @pytest.mark.asyncio
    async def test_link_provider_subject(self, store: IdentityStore, test_user: User):
        await store.link_provider_subject(test_user, "sub-9")
        await store.commit()

        assert (await store.get_user_by_provider_subject("sub-9")).id == test_user.id


class TestAuthTokens:
    """One-time token lifecycle."""

    @pytest.mark.asyncio
    async def test_find_active_token(self, store: IdentityStore, test_user: User):
        await store.create_token(
            test_user.id, AuthTokenType.OTP, "123456", _now() + timedelta(minutes=10)
        )
        await store.commit()

        found = await store.find_active_token(test_user.id, AuthTokenType.OTP, "123456", _now())
        assert found is not None
        assert found.is_used is False

        assert (
            await store.find_active_token(test_user.id, AuthTokenType.OTP, "654321", _now())
            is None
        )
        assert (
            await store.find_active_token(
                test_user.id, AuthTokenType.MAGIC_LINK, "123456", _now()
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_expired_token_is_not_active(self, store: IdentityStore, test_user: User):
        await store.create_token(
            test_user.id, AuthTokenType.OTP, "123456", _now() - timedelta(seconds=1)
        )
        await store.commit()

        assert (
            await store.find_active_token(test_user.id, AuthTokenType.OTP, "123456", _now())
            is None
        )

    @pytest.mark.asyncio
    async def test_invalidate_tokens_only_touches_kind(
        self, store: IdentityStore, test_user: User
    ):
        expires_at = _now() + timedelta(hours=1)
        await store.create_token(test_user.id, AuthTokenType.OTP, "111111", expires_at)
        await store.create_token(test_user.id, AuthTokenType.OTP, "222222", expires_at)
        await store.create_token(test_user.id, AuthTokenType.MAGIC_LINK, "link", expires_at)

        assert await store.invalidate_tokens(test_user.id, AuthTokenType.OTP) == 2
        await store.commit()

        assert (
            await store.find_active_token_by_value("link", AuthTokenType.MAGIC_LINK, _now())
            is not None
        )

    @pytest.mark.asyncio
    async def test_consume_token_is_single_use(self, store: IdentityStore, test_user: User):
        auth_token = await store.create_token(
            test_user.id, AuthTokenType.MAGIC_LINK, "link", _now() + timedelta(hours=1)
        )
        await store.commit()

        assert await store.consume_token(auth_token.id) is True
        assert await store.consume_token(auth_token.id) is False
        await store.commit()

        assert (
            await store.find_active_token_by_value("link", AuthTokenType.MAGIC_LINK, _now())
            is None
        )

    @pytest.mark.asyncio
    async def test_find_by_value_loads_owner(self, store: IdentityStore, test_user: User):
        await store.create_token(
            test_user.id, AuthTokenType.MAGIC_LINK, "link", _now() + timedelta(hours=1)
        )
        await store.commit()

        found = await store.find_active_token_by_value("link", AuthTokenType.MAGIC_LINK, _now())

        assert found is not None
        assert found.user.email == test_user.email

    @pytest.mark.asyncio
    async def test_delete_expired_tokens_ignores_used_flag(
        self, store: IdentityStore, test_user: User
    ):
        past = _now() - timedelta(minutes=1)
        future = _now() + timedelta(minutes=10)
        used = await store.create_token(test_user.id, AuthTokenType.OTP, "111111", past)
        await store.create_token(test_user.id, AuthTokenType.OTP, "222222", past)
        await store.create_token(test_user.id, AuthTokenType.OTP, "333333", future)
        await store.consume_token(used.id)
        await store.commit()

        assert await store.delete_expired_tokens(_now()) == 2
        await store.commit()

        assert (
            await store.find_active_token(test_user.id, AuthTokenType.OTP, "333333", _now())
            is not None
        )
