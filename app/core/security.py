"""Password hashing, JWT access tokens and opaque refresh-token generation."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.config import JWT_SECRET_MIN_BYTES

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 50
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Entropy of an opaque refresh token, in bytes (before base64url encoding).
REFRESH_TOKEN_BYTES = 64

# Claims every access token carries besides the registered JWT claims.
CLAIM_USERNAME = "username"
CLAIM_EMAIL = "email"
CLAIM_ROLE = "role"
CLAIM_FIRST_NAME = "first_name"
CLAIM_LAST_NAME = "last_name"
CLAIM_ROLE_NAME = "role_name"

REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud", CLAIM_USERNAME, CLAIM_ROLE]


class ConfigurationError(RuntimeError):
    """Fatal deployment misconfiguration (e.g. weak signing key). Never caught per-request."""


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def signing_key(settings: "Settings") -> str:
    """Return the JWT signing key, raising ConfigurationError if it is absent or too short."""
    secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else ""
    if len(secret.encode("utf-8")) < JWT_SECRET_MIN_BYTES:
        raise ConfigurationError(
            f"JWT signing key must be at least {JWT_SECRET_MIN_BYTES} bytes long"
        )
    return secret


def create_access_token(
    claims: dict[str, Any],
    settings: "Settings",
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Create a signed JWT access token from identity claims.

    `claims` must contain "sub"; issuer, audience, iat and exp are added here.
    Returns (token, expires_at).
    """
    issued_at = now or datetime.now(UTC)
    expires_at = issued_at + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        **claims,
        "sub": str(claims["sub"]),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(payload, signing_key(settings), algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str, settings: "Settings") -> dict[str, Any]:
    """
    Decode and validate a JWT; return its payload.
    Raises jwt.PyJWTError on bad signature, expiry, issuer/audience mismatch or missing claims.
    """
    return jwt.decode(
        token,
        signing_key(settings),
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        options={"require": REQUIRED_CLAIMS},
    )


def generate_refresh_token_string() -> str:
    """Return a URL-safe opaque token with REFRESH_TOKEN_BYTES of CSPRNG entropy."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)
