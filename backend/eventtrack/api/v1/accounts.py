"""Account profile and verification request endpoints.

- GET /accounts/{account_id}: public profile of an account
- POST /accounts/{account_id}/verify: email a verification link
"""

import uuid

from fastapi import APIRouter, Request

from eventtrack.api.deps import AccountStoreDep, TokenWorkflowDep
from eventtrack.api.v1.auth import account_to_response
from eventtrack.core.errors import AccountNotFoundError
from eventtrack.core.rate_limiting import TOKEN_REQUEST_LIMIT, limiter
from eventtrack.core.responses import DataResponse

router = APIRouter()


@router.get("/{account_id}")
async def get_account(
    account_id: uuid.UUID,
    store: AccountStoreDep,
) -> DataResponse[dict]:
    """Profile shown on an account's dashboard.

    Raises:
        AccountNotFoundError: No account has this id.
    """
    account = await store.get_by_id(account_id)
    if account is None:
        raise AccountNotFoundError()
    return DataResponse(data=account_to_response(account))


@router.post("/{account_id}/verify")
@limiter.limit(TOKEN_REQUEST_LIMIT)
async def request_verification(
    request: Request,
    account_id: uuid.UUID,
    workflow: TokenWorkflowDep,
) -> DataResponse[dict]:
    """Issue a fresh verification token and email the link.

    Any earlier verification token for the account is overwritten. The link
    is valid for one day.

    Rate limit: 5 per hour per IP.
    """
    receipt = await workflow.request_verification(
        account_id,
        scheme=request.url.scheme,
        host=request.headers.get("host", ""),
    )
    return DataResponse(
        data={
            "message": receipt.message,
            "expires_at": receipt.expires_at.isoformat(),
        }
    )
