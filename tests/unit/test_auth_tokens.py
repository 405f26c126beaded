"""Tests for password hashing and JWT access tokens."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tcgp.auth.jwt import create_access_token, verify_token
from tcgp.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_password_strength,
    verify_password,
)
from tcgp.config import get_settings
from tcgp.errors import ValidationError


class TestPassword:
    def test_hash_and_verify(self):
        hashed = hash_password("pikachu123")
        assert hashed.startswith("$argon2id$")
        assert verify_password("pikachu123", hashed) is True

    def test_wrong_password_rejected(self):
        assert verify_password("raichu123", hash_password("pikachu123")) is False

    def test_garbage_hash_rejected(self):
        assert verify_password("pikachu123", "not-a-hash") is False

    def test_minimum_length(self):
        validate_password_strength("abcdef")
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("abcde")

    def test_blank_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("       ")

    def test_too_long_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("a" * 129)

    def test_is_a_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength("")
        assert exc_info.value.field == "password"


class TestJWT:
    def test_round_trip(self):
        token = create_access_token("user-1", "ash@example.com")
        payload = verify_token(token)
        assert payload["sub"] == "user-1"
        assert payload["email"] == "ash@example.com"
        assert payload["type"] == "access"

    def test_wrong_type_rejected(self):
        token = create_access_token("user-1", "ash@example.com")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="refresh")

    def test_expired_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "user-1", "iat": past, "exp": past + timedelta(minutes=1), "iss": settings.jwt_issuer, "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_signature_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-1", "iss": settings.jwt_issuer, "type": "access"},
            "some-other-secret-key-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
