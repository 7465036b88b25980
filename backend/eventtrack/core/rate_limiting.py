"""Per-client throttling for the account endpoints (slowapi).

Token-issuing endpoints are throttled so they cannot be used to flood a
mailbox, and token-consuming endpoints so links cannot be brute forced.
Limits are defined here and referenced by the routers:

    @router.post("/forgot-password")
    @limiter.limit(TOKEN_REQUEST_LIMIT)
    async def forgot_password(request: Request, ...):
        ...

A signed-in client is throttled per account; anyone else per IP address.
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from eventtrack.core.auth import JWT_AUDIENCE
from eventtrack.core.config import settings

# Initiations: each one sends an email
TOKEN_REQUEST_LIMIT = "5/hour"
REGISTER_LIMIT = "3/hour"
CONTACT_LIMIT = "5/hour"

# Consumption and credential checks
LINK_CHECK_LIMIT = "10/minute"
CREDENTIAL_LIMIT = "5/15minute"

_DEFAULT_RETRY_AFTER = 60
_MAX_SUBJECT_LENGTH = 36  # str(uuid.UUID)


def _rate_limit_key_func(request: Request) -> str:
    """Choose the bucket a request counts against.

    Returns:
        "account:{sub}" for a request carrying a valid session JWT,
        otherwise "anon:{ip}".
    """
    # Only the sub claim is needed for keying. Full auth validation
    # (iat, revocation) happens in deps.py.
    session_jwt = request.cookies.get(settings.auth_cookie_name)
    if session_jwt:
        try:
            claims = jwt.decode(
                session_jwt,
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=JWT_AUDIENCE,
                issuer=settings.auth_issuer,
            )
        except jwt.InvalidTokenError:
            claims = {}
        subject = claims.get("sub")
        if isinstance(subject, str) and 0 < len(subject) <= _MAX_SUBJECT_LENGTH:
            return f"account:{subject}"

    return f"anon:{get_remote_address(request)}"


# In-memory counters: limits apply per process. A multi-instance deployment
# needs shared storage (RATELIMIT_STORAGE_URL).
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window, in seconds."""
    try:
        return int(exc.limit.limit.get_expiry())
    except (AttributeError, TypeError, ValueError):
        return _DEFAULT_RETRY_AFTER


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Render a 429 in the standard error envelope with Retry-After."""
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Too many requests. Limit: {exc.detail}",
            }
        },
        headers={"Retry-After": str(_retry_after_seconds(exc))},
    )
