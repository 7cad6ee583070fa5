"""Unit tests for security module.

Tests cover:
- Password hashing with Argon2id
- Password verification
- Access token issue and validation
"""

from datetime import UTC, datetime, timedelta

import pytest

from loginguard.core.security import (
    TokenError,
    burn_password_check,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    """Tests for password hashing utilities."""

    def test_hash_password(self):
        hashed = hash_password("mypassword123")

        assert hashed != "mypassword123"
        assert hashed.startswith("$argon2")

    def test_verify_password_correct(self):
        hashed = hash_password("correctpassword")
        assert verify_password("correctpassword", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("correctpassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_verify_password_malformed_hash(self):
        assert verify_password("anything", "not-a-hash") is False

    def test_hash_password_different_each_time(self):
        assert hash_password("samepassword") != hash_password("samepassword")

    def test_burn_password_check_returns_nothing(self):
        assert burn_password_check("whatever") is None


class TestAccessToken:
    """Tests for JWT issue and validation."""

    def test_round_trip_claims(self):
        token = create_access_token(
            subject="user-1",
            claims={"email": "a@example.com", "role": "buyer"},
            secret="s3cret",
            ttl=timedelta(hours=1),
        )

        claims = decode_access_token(token, "s3cret")

        assert claims["sub"] == "user-1"
        assert claims["email"] == "a@example.com"
        assert claims["role"] == "buyer"
        assert claims["exp"] - claims["iat"] == 3600

    def test_wrong_secret_rejected(self):
        token = create_access_token("user-1", {}, secret="s3cret", ttl=timedelta(hours=1))

        with pytest.raises(TokenError):
            decode_access_token(token, "other-secret")

    def test_expired_token_rejected(self):
        issued = datetime.now(UTC) - timedelta(days=2)
        token = create_access_token(
            "user-1", {}, secret="s3cret", ttl=timedelta(days=1), now=issued
        )

        with pytest.raises(TokenError):
            decode_access_token(token, "s3cret")

    def test_garbage_rejected(self):
        with pytest.raises(TokenError):
            decode_access_token("not.a.token", "s3cret")
