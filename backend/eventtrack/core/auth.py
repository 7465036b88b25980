"""Authentication helpers: password hashing, JWT sessions, auth cookie.

Pipeline:
- hash_password / verify_password: bcrypt credential handling
- create_jwt / set_auth_cookie / clear_auth_cookie: session issuance
- DUMMY_HASH: Timing-safe constant for user enumeration defense
"""

from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Response

from eventtrack.core.config import settings

JWT_AUDIENCE = "eventtrack"

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def _session_lifetime() -> timedelta:
    return timedelta(hours=settings.auth_session_hours)


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password.

    Returns:
        bcrypt hash as text.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash.

    Security: When there is no stored hash, still spends one bcrypt
    comparison against DUMMY_HASH so the response time does not reveal
    whether the account exists.

    Args:
        password: Plain-text password from the request.
        password_hash: Stored bcrypt hash, or None if no account matched.

    Returns:
        True only if the hash exists and matches.
    """
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def create_jwt(
    *,
    account_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT with standard claims.

    Args:
        account_id: Account UUID string for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to the session lifetime.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": account_id,
        "aud": JWT_AUDIENCE,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _session_lifetime()),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def set_auth_cookie(response: Response, token: str) -> None:
    """Set httpOnly JWT cookie on response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: JWT token string.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=int(_session_lifetime().total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Delete the session cookie.

    Cookie attributes must match set_auth_cookie() for browser to delete.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain or None,
    )


def start_session(response: Response, account_id: str) -> None:
    """Sign an account in by issuing a JWT cookie on the response."""
    token = create_jwt(
        account_id=account_id,
        secret=settings.auth_secret.get_secret_value(),
    )
    set_auth_cookie(response, token)
