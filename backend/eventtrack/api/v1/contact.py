"""Contact form endpoint.

- POST /contact: relay a visitor's query to the support inbox
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventtrack.api.deps import NotifierDep
from eventtrack.core.config import settings
from eventtrack.core.rate_limiting import CONTACT_LIMIT, limiter
from eventtrack.core.responses import DataResponse
from eventtrack.notifications.templates import support_query_message

router = APIRouter()


class ContactRequest(BaseModel):
    """Request body for POST /contact."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    message: str = Field(min_length=1, max_length=5000)


@router.post("")
@limiter.limit(CONTACT_LIMIT)
async def send_contact_query(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ContactRequest,
    notifier: NotifierDep,
) -> DataResponse[dict]:
    """Forward a contact query to SUPPORT_EMAIL.

    Rate limit: 5 per hour per IP.
    """
    await notifier.send_message(
        support_query_message(
            destination=settings.support_email,
            name=body.name,
            email=body.email,
            phone=body.phone,
            message=body.message,
        )
    )
    return DataResponse(
        data={"message": "Your message has been sent. You will be contacted soon."}
    )
