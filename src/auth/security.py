"""JWT access token handling.

Tokens are issued by the identity provider in front of CourseFlow; this
service only verifies them. ``create_access_token`` exists for tests and
operator tooling that need a token signed with the shared secret.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from src.config.settings import get_settings


def create_access_token(
    user_id: UUID | str,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Token payload includes:
        - sub: User id
        - email, role: Identity claims
        - exp, iat: Expiration and issue timestamps
        - type: "access" (checked on decode)
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )

    return jwt.encode(
        {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "exp": expire,
            "iat": now,
            "type": "access",
        },
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates the signature, the expiration time and ``type == "access"``.

    Raises:
        JWTError: If token is invalid, expired, of the wrong type or missing claims
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    for claim in ("sub", "email", "role"):
        if claim not in payload:
            msg = f"Access token missing {claim} claim"
            raise JWTError(msg)

    return payload
