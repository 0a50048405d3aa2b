"""Tests for access token handling."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from src.auth.permissions import UserRole
from src.auth.security import create_access_token, decode_access_token
from src.config.settings import get_settings


def sign(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


class TestAccessToken:
    """Tests for access token creation and decoding."""

    def test_decode_access_token(self) -> None:
        """Should decode token and return payload."""
        user_id = uuid4()
        token = create_access_token(user_id, "aluno@example.com", UserRole.STUDENT.value)

        payload = decode_access_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["email"] == "aluno@example.com"
        assert payload["role"] == UserRole.STUDENT.value
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_access_token_expired(self) -> None:
        """Should raise JWTError for expired token."""
        token = create_access_token(
            uuid4(),
            "aluno@example.com",
            UserRole.STUDENT.value,
            expires_delta=timedelta(seconds=-1),
        )

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        """Should raise JWTError for invalid token."""
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_secret(self) -> None:
        """Tokens signed with another key are rejected."""
        token = jwt.encode(
            {"sub": str(uuid4()), "email": "x@example.com", "role": "admin"},
            "another-secret-key-with-enough-length!!",
            algorithm="HS256",
        )

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_wrong_type(self) -> None:
        """Should raise JWTError if token type is not 'access'."""
        token = sign(
            {
                "sub": str(uuid4()),
                "email": "aluno@example.com",
                "role": UserRole.STUDENT.value,
                "type": "refresh",
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            }
        )

        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_missing_role(self) -> None:
        """Tokens without identity claims are rejected."""
        token = sign(
            {
                "sub": str(uuid4()),
                "email": "aluno@example.com",
                "type": "access",
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            }
        )

        with pytest.raises(JWTError, match="role"):
            decode_access_token(token)

    def test_tokens_unique_for_different_users(self) -> None:
        """Access tokens for different users are unique."""
        first = create_access_token(uuid4(), "a@example.com", UserRole.STUDENT.value)
        second = create_access_token(uuid4(), "b@example.com", UserRole.STUDENT.value)
        assert first != second
