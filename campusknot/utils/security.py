"""Credential helpers: password hashing, access tokens and one-time secrets."""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from campusknot.config import settings
from campusknot.utils.errors import AuthenticationError

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72
_BCRYPT_ROUNDS = 10


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password (str): The plain-text password.

    Returns:
        str: The bcrypt hash, safe to store.
    """
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plain-text password against a stored bcrypt hash.

    A malformed stored hash never verifies.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user_id: int, expires_in: Optional[timedelta] = None) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id (int): The user the token identifies.
        expires_in (Optional[timedelta]): Lifetime; defaults to TOKEN_EXPIRY_DAYS.

    Returns:
        str: The encoded JWT.
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(days=settings.TOKEN_EXPIRY_DAYS)
    payload: Dict[str, Any] = {"sub": str(user_id), "iat": now, "exp": now + lifetime}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Verify an access token and return the user id it names.

    Raises:
        AuthenticationError: If the token is expired, tampered with or malformed.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Invalid token") from e


def generate_verification_code() -> str:
    """Return a six digit one-time code."""
    return str(100000 + secrets.randbelow(900000))


def generate_temporary_password(length: int = 8) -> str:
    """Return a random lowercase alphanumeric password."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
