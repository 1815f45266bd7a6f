from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
import hmac

from solar_tracker.core.config import settings
from solar_tracker.core.exceptions import ConfigurationError, InvalidTokenError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def create_access_token(
    data: Dict[str, Any],
    secret: Optional[str],
    expires_delta: Optional[timedelta] = None,
    algorithm: str = "HS256"
) -> str:
    """Create a signed JWT carrying `data` plus iat/exp claims"""
    if not secret:
        raise ConfigurationError("JWT secret is not configured")

    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "exp": now + (expires_delta or settings.JWT_EXPIRES_DELTA),
    })
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_token(token: str, secret: Optional[str], algorithm: str = "HS256") -> Dict[str, Any]:
    """Decode JWT token; signature and expiry failures look the same to callers"""
    if not secret:
        raise ConfigurationError("Server is missing JWT configuration")

    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        raise InvalidTokenError()


def keys_match(provided: Optional[str], expected: str) -> bool:
    """Constant-time comparison of a shared secret header"""
    if not provided:
        return False
    return hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8'))
