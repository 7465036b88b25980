"""Shared dependencies for API endpoints.

Account store, notifier and workflow wiring, plus session authentication
from the JWT cookie.

WHY DEPENDENCY INJECTION:
- Consistent auth across all endpoints
- Easy to swap implementations (database → in-memory store, Resend → console)
- Testable with overridden dependencies
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Annotated

import jwt
from fastapi import Depends, Request

from eventtrack.core.auth import JWT_AUDIENCE
from eventtrack.core.config import settings
from eventtrack.core.errors import UnauthorizedError
from eventtrack.notifications.base import Notifier
from eventtrack.notifications.factory import get_notifier
from eventtrack.repositories.account_store import AccountStore
from eventtrack.repositories.memory_account_store import get_memory_account_store
from eventtrack.services.token_workflow import TokenWorkflow

# Generic 401 message, identical for every auth failure.
# Security: never says whether the JWT was expired, forged or revoked.
_UNAUTHORIZED_MESSAGE = "Authentication required"


async def get_account_store() -> AsyncGenerator[AccountStore, None]:
    """Provide the configured account store for one request.

    The database backend opens one session per request; the memory backend
    shares a process-wide store.
    """
    if settings.account_store_backend == "memory":
        yield get_memory_account_store()
        return

    from eventtrack.core.database import async_session_factory
    from eventtrack.repositories.account_repository import SqlAccountStore

    async with async_session_factory() as session:
        yield SqlAccountStore(session)


def get_notifier_dep() -> Notifier:
    """Provide the process-wide notifier."""
    return get_notifier()


AccountStoreDep = Annotated[AccountStore, Depends(get_account_store)]
NotifierDep = Annotated[Notifier, Depends(get_notifier_dep)]


def get_token_workflow(store: AccountStoreDep, notifier: NotifierDep) -> TokenWorkflow:
    """Build the token workflow service from settings."""
    return TokenWorkflow(
        store,
        notifier,
        verification_ttl=timedelta(hours=settings.verification_token_ttl_hours),
        reset_ttl=timedelta(minutes=settings.reset_token_ttl_minutes),
    )


TokenWorkflowDep = Annotated[TokenWorkflow, Depends(get_token_workflow)]


async def get_current_account_id(
    request: Request,
    store: AccountStoreDep,
) -> uuid.UUID:
    """Get current account ID from the session cookie.

    Validation steps:
    1. Read JWT from cookie
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID
    5. Check token_invalidated_before (revocation after password reset)

    Raises:
        UnauthorizedError: 401 for any auth failure.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthorizedError(_UNAUTHORIZED_MESSAGE)

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=settings.auth_issuer,
        )
        account_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise UnauthorizedError(_UNAUTHORIZED_MESSAGE) from exc

    # Security: iat is required for revocation check. A JWT without iat
    # would bypass token_invalidated_before entirely.
    iat = payload.get("iat")
    if iat is None:
        raise UnauthorizedError(_UNAUTHORIZED_MESSAGE)

    account = await store.get_by_id(account_id)
    if account is None:
        raise UnauthorizedError(_UNAUTHORIZED_MESSAGE)
    invalidated_before = account.token_invalidated_before
    if invalidated_before is not None and iat < invalidated_before.timestamp():
        raise UnauthorizedError(_UNAUTHORIZED_MESSAGE)

    return account_id


CurrentAccountId = Annotated[uuid.UUID, Depends(get_current_account_id)]
