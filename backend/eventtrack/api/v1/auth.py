"""Authentication endpoints.

Endpoints:
- POST /auth/register: create an unverified account and sign it in
- POST /auth/login: username + password sign-in
- POST /auth/logout: clear the session cookie
- GET /auth/me: current account
- POST /auth/forgot-password: start the password reset workflow

Security considerations:
- login: constant-time comparison via DUMMY_HASH prevents user enumeration
- forgot-password: tells the caller when no account has the email. This
  differs from the token links, which never reveal why a token failed.
"""

import structlog
from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventtrack.api.deps import AccountStoreDep, CurrentAccountId, TokenWorkflowDep
from eventtrack.core.auth import (
    clear_auth_cookie,
    hash_password,
    start_session,
    verify_password,
)
from eventtrack.core.errors import UnauthorizedError
from eventtrack.core.rate_limiting import (
    CREDENTIAL_LIMIT,
    REGISTER_LIMIT,
    TOKEN_REQUEST_LIMIT,
    limiter,
)
from eventtrack.core.responses import DataResponse
from eventtrack.models.account import Account

logger = structlog.get_logger()

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    ``image`` and ``image_id`` reference an already-uploaded profile picture;
    uploading it is the client's job.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    contact_no: str | None = Field(None, max_length=30)
    sex: str | None = Field(None, max_length=20)
    image: str | None = Field(None, max_length=2048)
    image_id: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


def account_to_response(account: Account) -> dict:
    """Build the public account payload."""
    return {
        "id": str(account.id),
        "username": account.username,
        "email": account.email,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "contact_no": account.contact_no,
        "sex": account.sex,
        "image": account.image,
        "is_verified": account.is_verified,
    }


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    response: Response,
    store: AccountStoreDep,
) -> DataResponse[dict]:
    """Register a new account and sign it in.

    The account starts unverified; verification is requested separately.

    Rate limit: 3 per hour per IP.
    """
    account = await store.create(
        username=body.username.strip(),
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        contact_no=body.contact_no,
        sex=body.sex,
        image=body.image,
        image_id=body.image_id,
    )
    start_session(response, str(account.id))
    logger.info("account_registered", account_id=str(account.id))

    data = account_to_response(account)
    data["message"] = f"Welcome to EventTrack {account.username}"
    return DataResponse(data=data)


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(CREDENTIAL_LIMIT)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    store: AccountStoreDep,
) -> DataResponse[dict]:
    """Verify username + password and issue the session cookie.

    Rate limit: 5 per 15 minutes per IP.
    """
    account = await store.get_by_username(body.username)

    if not verify_password(body.password, account.password_hash if account else None):
        raise UnauthorizedError("Invalid username or password")
    assert account is not None

    start_session(response, str(account.id))
    return DataResponse(data=account_to_response(account))


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear auth cookie. No auth required."""
    clear_auth_cookie(response)
    return DataResponse(data={"message": "Logged you out!"})


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def get_me(
    account_id: CurrentAccountId,
    store: AccountStoreDep,
) -> DataResponse[dict]:
    """Return the signed-in account."""
    account = await store.get_by_id(account_id)
    if account is None:
        raise UnauthorizedError()
    return DataResponse(data=account_to_response(account))


# ===================================================================
# POST /auth/forgot-password
# ===================================================================


@router.post("/forgot-password")
@limiter.limit(TOKEN_REQUEST_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    workflow: TokenWorkflowDep,
) -> DataResponse[dict]:
    """Email a password reset link to the account with this address.

    The link is built from this request's scheme and Host header and is
    valid for one hour.

    Rate limit: 5 per hour per IP.
    """
    receipt = await workflow.request_password_reset(
        body.email,
        scheme=request.url.scheme,
        host=request.headers.get("host", ""),
    )
    return DataResponse(
        data={
            "message": receipt.message,
            "expires_at": receipt.expires_at.isoformat(),
        }
    )
