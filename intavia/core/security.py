import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import jwt, JWTError
from passlib.context import CryptContext

from intavia.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# passlib stays around to verify hashes written before the switch to bcrypt directly
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning("Password exceeds 72 bytes, truncating before hashing")
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Passwords longer than bcrypt's 72-byte limit are truncated; validation
    should reject them before this point.
    """
    try:
        return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")
    except Exception as e:
        logger.error(f"Password hashing failed: {e}", exc_info=True)
        raise ValueError("Invalid password") from e


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt or passlib-wrapped hash."""
    try:
        try:
            return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return pwd_context.verify(password, hashed)
    except Exception as e:
        logger.error(f"Password verification failed: {e}", exc_info=True)
        return False


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Optional[dict]:
    """Return the token claims, or None if the token is invalid or expired."""
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def verify_monitoring_key(provided: Optional[str], settings: Optional[Settings] = None) -> bool:
    """
    Check a bearer value against the pre-shared monitoring key.

    An unset key disables key-based access entirely.
    """
    settings = settings or get_settings()
    expected = settings.monitoring_api_key
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
