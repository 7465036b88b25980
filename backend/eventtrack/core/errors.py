"""API and domain error classes.

Every error a request can end in is an APIError subclass, so the exception
handlers in main.py render one consistent envelope with a human-readable
message. RandomnessFailure is the one exception: it is not a request error
but a process-level fault, and reaches clients only as a generic 500.

Services and stores raise these directly; nothing between them and the
handler translates errors.
"""

from typing import Literal

TokenPurpose = Literal["verify", "reset"]


class APIError(Exception):
    """An error rendered as {"error": {...}} with its own HTTP status.

    Attributes:
        code: Machine-readable error code (e.g., "STORAGE_ERROR").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


# =============================================================================
# Account / token workflow errors
# =============================================================================


class AccountNotFoundError(APIError):
    """No account matched the identifier an initiation was started for (404).

    The message is the same whether the lookup used an id or an email.
    """

    def __init__(self) -> None:
        super().__init__(
            code="ACCOUNT_NOT_FOUND",
            message="No account with that email address exists.",
            status_code=404,
        )


_TOKEN_INVALID_MESSAGES: dict[str, str] = {
    "verify": "Verification token is invalid or has expired.",
    "reset": "Password reset token is invalid or has expired.",
}


class TokenInvalidOrExpiredError(APIError):
    """Presented token is unknown, already consumed, or past its expiry (400).

    Security: One error for all three cases, so the response never reveals
    whether a token ever existed.

    Args:
        purpose: Which workflow the token belongs to ("verify" or "reset").
    """

    def __init__(self, purpose: TokenPurpose) -> None:
        self.purpose = purpose
        super().__init__(
            code="TOKEN_INVALID_OR_EXPIRED",
            message=_TOKEN_INVALID_MESSAGES[purpose],
            status_code=400,
        )


class PasswordMismatchError(APIError):
    """New password and its confirmation differ (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="PASSWORD_MISMATCH",
            message="Passwords do not match.",
            status_code=400,
        )


class StorageError(APIError):
    """Account store could not read or persist a record (503)."""

    def __init__(
        self, message: str = "Could not save your changes. Please try again."
    ) -> None:
        super().__init__(
            code="STORAGE_ERROR",
            message=message,
            status_code=503,
        )


class NotifyError(APIError):
    """Outbound email could not be dispatched (502).

    Args:
        destination: Address the message was meant for. Kept on the
            exception for logging, never put in the client message.
    """

    def __init__(
        self,
        message: str = "We could not send the email. Please try again later.",
        *,
        destination: str | None = None,
    ) -> None:
        self.destination = destination
        super().__init__(
            code="NOTIFY_ERROR",
            message=message,
            status_code=502,
        )


class SessionEstablishmentError(APIError):
    """Signing the account in after a successful consumption failed (500).

    The account change itself is already persisted when this is raised.
    """

    def __init__(self) -> None:
        super().__init__(
            code="SESSION_ERROR",
            message="Your account was updated but we could not sign you in. "
            "Please log in.",
            status_code=500,
        )


class RandomnessFailure(Exception):
    """The OS randomness source failed while generating a token.

    Fatal for token issuance: a generator that raised this refuses to issue
    further tokens for the lifetime of the process.
    """
