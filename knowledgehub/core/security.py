"""Password hashing and JWT creation/verification for authentication."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from knowledgehub.core.config import settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

NAME_MIN_LEN = 2
NAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


@dataclass(frozen=True)
class IssuedToken:
    """A signed access token and the session identifiers stored alongside it."""

    token: str
    token_id: str
    expires_at: datetime


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(sub: str | int) -> IssuedToken:
    """Create a JWT access token with sub (user id), jti, iat and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    token_id = uuid.uuid4().hex
    payload: dict[str, Any] = {
        "sub": str(sub),
        "jti": token_id,
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    token = jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )
    return IssuedToken(token=token, token_id=token_id, expires_at=expire)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, jti, exp, iat).
    Raises jwt.ExpiredSignatureError when expired, jwt.PyJWTError on any other failure.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
