"""
Security utilities: password hashing and access tokens.

Passwords are stored as salted bcrypt hashes; the HTTP layer identifies the
acting user with a short-lived HS256 JWT carrying the user id and role.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from core.config import settings
from core.utils.datetime import now

logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes
_BCRYPT_MAX_BYTES = 72


def _encode_password(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    return bcrypt.hashpw(_encode_password(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_encode_password(password), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        logger.warning("Stored password hash could not be parsed")
        return False


def generate_unusable_password() -> str:
    """Random password for accounts created on someone's behalf."""
    return secrets.token_urlsafe(32)


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: Subject of the token
        role: Role tag of the user at issue time
        expires_delta: Override for the configured lifetime

    Returns:
        Encoded JWT string
    """
    issued_at = now()
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": issued_at,
        "exp": expires_at,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate an access token.

    Returns:
        The token payload, or None when the token is expired or invalid
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected invalid access token: {e}")
        return None

    if payload.get("type") != "access" or "sub" not in payload:
        return None
    return payload
