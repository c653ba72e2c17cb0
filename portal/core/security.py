"""
Password hashing and access token helpers.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

logger = logging.getLogger(__name__)

EXCLUSIVE_CAPABILITY = "exclusive"
BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a bcrypt hash; malformed hashes never verify."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_placeholder_hash() -> str:
    """Random stand-in credential that no password can match.

    It is not a bcrypt hash, so ``verify_password`` always rejects it; the gate
    stays closed until an operator sets a real password.
    """
    return secrets.token_hex(16)


def is_placeholder_hash(password_hash: str) -> bool:
    return not str(password_hash or "").startswith("$2")


def create_access_token(
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> tuple[str, datetime]:
    """Sign an ``exclusive`` access token and return it with its expiry."""
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + (expires_delta or timedelta(hours=1))
    payload = {
        "access": EXCLUSIVE_CAPABILITY,
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm), expires_at


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the signature or expiry is bad."""
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.InvalidTokenError as error:
        logger.debug("Access token rejected: %s", error)
        return None
