"""Unit tests for one-time credential generation."""

from datetime import UTC, datetime, timedelta

from filevault_core.auth.tokens import (
    generate_opaque_token,
    generate_otp,
    magic_link_expiry,
    otp_expiry,
)


def test_generate_otp_is_six_digits() -> None:
    for _ in range(200):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_generate_opaque_token_is_64_hex_chars() -> None:
    token = generate_opaque_token()

    assert len(token) == 64
    int(token, 16)  # raises if not hex


def test_opaque_tokens_do_not_repeat() -> None:
    tokens = {generate_opaque_token() for _ in range(100)}
    assert len(tokens) == 100


def test_expiry_windows() -> None:
    now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    assert otp_expiry(10, now) == now + timedelta(minutes=10)
    assert magic_link_expiry(1, now) == now + timedelta(hours=1)


def test_expiry_defaults_to_current_time() -> None:
    before = datetime.now(UTC)
    expires_at = otp_expiry(10)

    assert before + timedelta(minutes=10) <= expires_at
    assert expires_at.tzinfo is not None
