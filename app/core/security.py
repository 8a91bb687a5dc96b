"""Password hashing and session token creation/verification."""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from app.core.config import Settings

# PBKDF2 parameters; changing them invalidates every stored password hash.
PBKDF2_ALGORITHM = "sha512"
PBKDF2_ITERATIONS = 10_000
PBKDF2_KEY_LENGTH = 64
SALT_BYTES = 16

# Min/max lengths for registration input validation.
NAME_MIN_LEN = 1
NAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Locally registered accounts get a synthesized open_id in this namespace.
LOCAL_OPEN_ID_PREFIX = "local_"
LOCAL_OPEN_ID_TOKEN_LEN = 32


def hash_password(plain_password: str, salt: str | None = None) -> tuple[str, str]:
    """
    Derive a PBKDF2-HMAC-SHA512 digest of the password.

    Returns (digest_hex, salt_hex). A fresh random salt is generated when none is given.
    """
    if salt is None:
        salt = secrets.token_bytes(SALT_BYTES).hex()
    digest = hashlib.pbkdf2_hmac(
        PBKDF2_ALGORITHM,
        plain_password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_LENGTH,
    )
    return digest.hex(), salt


def verify_password(plain_password: str, hashed: str | None, salt: str | None) -> bool:
    """Verify a plain password against a stored digest and salt."""
    if not hashed or not salt:
        return False
    candidate, _ = hash_password(plain_password, salt)
    return hmac.compare_digest(candidate, hashed)


def generate_local_open_id() -> str:
    """Return a random open_id in the local-account namespace."""
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
    token = "".join(secrets.choice(alphabet) for _ in range(LOCAL_OPEN_ID_TOKEN_LEN))
    return f"{LOCAL_OPEN_ID_PREFIX}{token}"


def is_local_open_id(open_id: str) -> bool:
    return open_id.startswith(LOCAL_OPEN_ID_PREFIX)


@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""

    open_id: str
    name: str | None
    login_method: str | None
    expires_at: datetime


def session_ttl(settings: Settings) -> timedelta:
    return timedelta(days=settings.SESSION_TTL_DAYS)


def create_session_token(
    settings: Settings,
    open_id: str,
    name: str | None = None,
    login_method: str | None = None,
    ttl: timedelta | None = None,
) -> str:
    """Create a signed session JWT with sub (open_id), name, login_method, iat and exp."""
    now = datetime.now(UTC)
    expire = now + (ttl if ttl is not None else session_ttl(settings))
    payload: dict[str, Any] = {
        "sub": open_id,
        "name": name,
        "login_method": login_method,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_session_token(settings: Settings, token: str | None) -> SessionClaims | None:
    """
    Decode and validate a session JWT.

    Returns None for anything that is not a well-formed, correctly signed, unexpired token.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        return None
    name = payload.get("name")
    login_method = payload.get("login_method")
    return SessionClaims(
        open_id=sub,
        name=name if isinstance(name, str) else None,
        login_method=login_method if isinstance(login_method, str) else None,
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )
