"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack, outermost first:
    1. RequestIDMiddleware - injects X-Request-ID into every request/response
    2. CORSMiddleware - the admin dashboard calls from the browser
    3. ErrorHandlerMiddleware - domain exceptions -> {"error": <message>}
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from safe_escrow.domain.exceptions import (
    DependencyFailureError,
    EscrowAdminError,
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailureError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR: list[tuple[type[EscrowAdminError], int]] = [
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ValidationFailureError, 400),
    (InvalidStateTransitionError, 409),
    (DependencyFailureError, 502),
]


def status_for(exc: EscrowAdminError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return ``{"error": ...}`` JSON responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except EscrowAdminError as exc:
            status_code = status_for(exc)
            log = logger.error if status_code >= 500 else logger.warning
            log("request.failed", code=exc.code, status=status_code, error=exc.message)
            return error_response(status_code, exc.message)
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return error_response(500, "An unexpected error occurred")


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies/queries in the same shape as domain errors."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    logger.warning("request.invalid", errors=len(errors), location=location)
    return error_response(400, f"{location}: {message}" if location else message)


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register all middleware on the FastAPI application.

    Order matters: the last added middleware runs first.
    """
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Error handling (innermost, so CORS headers reach error bodies)
    app.add_middleware(ErrorHandlerMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID (outermost)
    app.add_middleware(RequestIDMiddleware)
