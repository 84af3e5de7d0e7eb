"""Password hashing and JWT tokens.

Passwords: bcrypt (cost 12) over a SHA-256 pre-hash so inputs longer than
bcrypt's 72-byte limit are not silently truncated.

Tokens: short-lived access tokens and 7-day refresh tokens, signed with
separate secrets. The "type" claim keeps one from being used as the other.
"""

import base64
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from .config import settings

BCRYPT_ROUNDS = 12


def _prehash(password: str) -> bytes:
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return bool(bcrypt.checkpw(_prehash(plain_password), hashed_password.encode("utf-8")))
    except (ValueError, TypeError):
        return False


def _encode(claims: dict[str, Any], secret: str, expires: timedelta, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "type": token_type, "iat": now, "exp": now + expires}
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, email: str, role: str) -> str:
    return _encode(
        {"sub": str(user_id), "email": email, "role": role},
        settings.jwt_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
        "access",
    )


def create_refresh_token(user_id: int) -> str:
    return _encode(
        {"sub": str(user_id)},
        settings.jwt_refresh_secret,
        timedelta(days=settings.refresh_token_expire_days),
        "refresh",
    )


def _decode(token: str, secret: str, token_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if payload.get("type") != token_type:
        raise ValueError("Wrong token type")
    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    """Decode an access token. Raises ValueError if invalid or expired."""
    return _decode(token, settings.jwt_secret, "access")


def verify_refresh_token(token: str) -> dict[str, Any]:
    """Decode a refresh token. Raises ValueError if invalid or expired."""
    return _decode(token, settings.jwt_refresh_secret, "refresh")


def generate_token() -> str:
    """32 random bytes, hex encoded (email verification, password reset)."""
    return secrets.token_hex(32)
