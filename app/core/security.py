"""Password hashing, access-token signing/verification, and random identifiers."""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 64
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

ACCESS_TOKEN_TYPE = "access_token"


@dataclass(frozen=True)
class AccessTokenClaims:
    """Verified contents of an access token."""

    user_id: int
    session_id: str
    expires_at: datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_session_id() -> str:
    """Unguessable session identifier, independent of any database row id."""
    return str(uuid.uuid4())


def generate_otp(length: int | None = None) -> str:
    """Numeric one-time code from a CSPRNG; leading zeros are kept."""
    digits = length or settings.OTP_LENGTH
    return "".join(secrets.choice("0123456789") for _ in range(digits))


def generate_url_token() -> str:
    return secrets.token_urlsafe(32)


def access_token_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(
    user_id: int, session_id: str, expires_at: datetime | None = None
) -> str:
    """Sign a token binding user and session. Expiry defaults to JWT_EXPIRE_MINUTES from now."""
    now = utcnow()
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "sid": session_id,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": expires_at or access_token_expiry(now),
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str | None) -> AccessTokenClaims | None:
    """
    Check signature, expiry, and shape of an access token.
    Returns None on any failure; never raises.
    """
    if not token:
        return None
    secret = settings.JWT_SECRET.get_secret_value()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub", "sid"]},
        )
    except jwt.PyJWTError:
        return None
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    session_id = payload.get("sid")
    if not isinstance(session_id, str) or not session_id:
        return None
    try:
        user_id = int(payload["sub"])
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
    except (TypeError, ValueError):
        return None
    return AccessTokenClaims(user_id=user_id, session_id=session_id, expires_at=expires_at)
