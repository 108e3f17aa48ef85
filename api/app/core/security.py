"""
Password hashing and access tokens.

Tokens are HS256 JWTs carrying the user id (``sub``), the email, and the
active role the user is acting as (``role``). Authorization never trusts
``role`` on its own: role grants are re-read from the database on every
request (see app.core.deps).
"""
from datetime import datetime, timedelta, timezone
from typing import Any
import uuid

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from app.core.config import settings

ph = PasswordHasher()

REQUIRED_CLAIMS = ["sub", "exp", "iat"]


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password; unknown or corrupt hashes never verify."""
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """True when the hash was made with weaker parameters than the current ones."""
    return ph.check_needs_rehash(password_hash)


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    role: str | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims, or None for a bad signature, expired or malformed token."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.InvalidTokenError:
        return None


def subject_from_authorization(header: str | None) -> str | None:
    """User id from an ``Authorization: Bearer`` header, if it carries a valid token."""
    if not header or not header.startswith("Bearer "):
        return None
    payload = decode_access_token(header.split(" ", 1)[1])
    return payload.get("sub") if payload else None
