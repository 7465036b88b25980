"""Emailed token link endpoints, mounted at the site root.

The emailed URLs are ``{scheme}://{host}/verify/{token}`` and
``{scheme}://{host}/reset/{token}``, so these routes carry no API prefix.

Endpoints:
- GET /verify/{token}: consume a verification token, sign in, redirect
- GET /reset/{token}: check a reset token before showing the reset form
- POST /reset/{token}: consume a reset token with the new password
"""

from typing import Annotated

from fastapi import APIRouter, Path, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from eventtrack.api.deps import TokenWorkflowDep
from eventtrack.core.auth import start_session
from eventtrack.core.config import settings
from eventtrack.core.rate_limiting import (
    CREDENTIAL_LIMIT,
    LINK_CHECK_LIMIT,
    limiter,
)
from eventtrack.core.responses import DataResponse
from eventtrack.models.account import Account

router = APIRouter()

TokenPath = Annotated[str, Path(min_length=1, max_length=256)]


class ResetPasswordRequest(BaseModel):
    """Request body for POST /reset/{token}."""

    model_config = ConfigDict(extra="forbid")

    password: str = Field(min_length=1, max_length=128)
    confirm: str = Field(max_length=128)


@router.get("/verify/{token}")
@limiter.limit(LINK_CHECK_LIMIT)
async def verify_account(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    token: TokenPath,
    workflow: TokenWorkflowDep,
) -> RedirectResponse:
    """Mark the token's account verified, sign it in, redirect to events.

    Rate limit: 10 per minute per IP.
    """
    response = RedirectResponse(url=f"{settings.frontend_url}/events", status_code=303)

    def login(account: Account) -> None:
        start_session(response, str(account.id))

    await workflow.verify_account(token, login=login)
    # Prevent token leakage via Referer header
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@router.get("/reset/{token}")
@limiter.limit(LINK_CHECK_LIMIT)
async def check_reset_link(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    token: TokenPath,
    workflow: TokenWorkflowDep,
) -> DataResponse[dict]:
    """Tell the client whether the reset form may be shown for this token.

    Rate limit: 10 per minute per IP.
    """
    await workflow.check_reset_token(token)
    return DataResponse(data={"valid": True})


@router.post("/reset/{token}")
@limiter.limit(CREDENTIAL_LIMIT)
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    token: TokenPath,
    body: ResetPasswordRequest,
    response: Response,
    workflow: TokenWorkflowDep,
) -> DataResponse[dict]:
    """Set a new password from a reset link and sign the account in.

    A confirmation mismatch leaves the link usable. ``notification_sent`` is
    false when the "password changed" email could not be delivered; the new
    password is in effect either way.

    Rate limit: 5 per 15 minutes per IP.
    """

    def login(account: Account) -> None:
        start_session(response, str(account.id))

    result = await workflow.reset_password(
        token, body.password, body.confirm, login=login
    )
    response.headers["Referrer-Policy"] = "no-referrer"
    return DataResponse(
        data={
            "message": result.message,
            "notification_sent": result.notification_sent,
        }
    )
