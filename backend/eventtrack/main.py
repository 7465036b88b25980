"""EventTrack accounts service.

create_app() wires the pieces together:
- logging (structlog over stdlib logging, one level for both)
- security headers and CORS
- error envelope rendering for APIError, request validation, rate limits
  and anything unexpected
- emailed token links at the site root, JSON API under /api/v1

Run with: uvicorn eventtrack.main:app
"""

import logging

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from eventtrack.api import links
from eventtrack.api.v1.router import router as v1_router
from eventtrack.core.config import settings
from eventtrack.core.errors import APIError
from eventtrack.core.rate_limiting import limiter, rate_limit_exceeded_handler
from eventtrack.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()

# Paths whose responses may carry session cookies or token state
_NO_STORE_PREFIXES = ("/api/", "/verify/", "/reset/")

_BASE_SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
}


def configure_logging(level: str = settings.log_level) -> None:
    """Apply LOG_LEVEL to stdlib loggers and structlog alike."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(
        level=numeric_level, format="%(levelname)s %(name)s %(message)s"
    )
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add browser hardening headers to every response.

    Endpoints may set their own Referrer-Policy (the token links use
    no-referrer); everything else gets strict-origin-when-cross-origin.
    Responses under the API and token link paths are never cached. HSTS is
    sent in production only, where TLS terminates at the reverse proxy.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        response.headers.update(_BASE_SECURITY_HEADERS)
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        if request.url.path.startswith(_NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: list[dict] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError in the error envelope.

    Server-side failures (storage, email delivery, session) are logged;
    client errors are not.
    """
    if exc.status_code >= 500:
        logger.warning(
            "request_failed",
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
        )
    return _error_response(exc.status_code, exc.code, exc.message, exc.details)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI request validation failures as VALIDATION_ERROR (400)."""
    details = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return _error_response(400, "VALIDATION_ERROR", "Request validation failed", details)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything that is not an APIError.

    RandomnessFailure from token generation ends up here. The client only
    ever sees a generic INTERNAL_ERROR.
    """
    logger.exception("unhandled_exception", exc_info=exc, path=request.url.path)
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


def create_app() -> FastAPI:
    """Build the FastAPI application.

    A factory so tests and alternative entry points get a fully wired app
    without relying on import side effects.
    """
    configure_logging()

    app = FastAPI(
        title="EventTrack Accounts API",
        version="1.0.0",
        description="Registration, login, email verification and password reset",
    )

    # Starlette runs middleware in reverse order of registration; CORS is
    # added last so it answers preflight requests first.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(links.router, tags=["links"])
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe."""
        return {"status": "healthy"}

    return app


app = create_app()
