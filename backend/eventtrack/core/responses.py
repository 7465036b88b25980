"""JSON envelopes shared by every endpoint.

Success bodies are ``{"data": ...}``; failures are
``{"error": {"code", "message", "details"}}`` and are built only by the
exception handlers in main.py.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Success envelope.

    Usage:
        @router.get("/me")
        async def get_me(...) -> DataResponse[dict]:
            return DataResponse(data=account_to_response(account))
    """

    data: T


class ErrorDetail(BaseModel):
    """Body of the error envelope.

    Attributes:
        code: Stable machine-readable code, e.g. "TOKEN_INVALID_OR_EXPIRED".
        message: Text safe to show to the user.
        details: Per-field problems for VALIDATION_ERROR, otherwise None.
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Error envelope."""

    error: ErrorDetail
