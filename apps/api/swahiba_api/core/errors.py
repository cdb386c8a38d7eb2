"""Error taxonomy for the access and chat handlers.

Every failure a caller can see is an ``AccessError`` subclass carrying
the HTTP status, a stable machine code and the human ``error`` string.
``register_exception_handlers`` renders them as ``{"error", "details"?}``.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from swahiba_api.config import settings
from swahiba_api.logging_config import get_logger

logger = get_logger(__name__)


class AccessError(Exception):
    """Base class for failures returned synchronously to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL"

    def __init__(self, error: str, *, code: str | None = None, details: str | None = None):
        super().__init__(error)
        self.error = error
        self.code = code or self.default_code
        self.details = details


class ValidationFailed(AccessError):
    """Malformed phone, code or body."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION"


class AuthenticationFailed(AccessError):
    """Wrong code, credential or session."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "INVALID"


class SessionExpired(AuthenticationFailed):
    """Session token past its TTL (reported as an authentication failure)."""

    default_code = "EXPIRED"


class Forbidden(AccessError):
    """Caller is not a party to the request."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class NotFound(AccessError):
    """Missing challenge, request or credential."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class Conflict(AccessError):
    """Request lacks a link the operation needs (e.g. no assigned peer)."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class Expired(AccessError):
    """OTP, verification window or passkey challenge past its TTL."""

    status_code = status.HTTP_410_GONE
    default_code = "EXPIRED"


def error_body(error: str, details: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error}
    if details:
        body["details"] = details
    return body


def _validation_message(exc: RequestValidationError) -> tuple[str, str]:
    """Pick the caller-facing message and a compact details string."""
    errors = exc.errors()
    message = "Invalid request"
    for err in errors:
        loc = err.get("loc", ())
        if err.get("type", "").startswith("union_tag") or (loc and loc[-1] == "action"):
            message = "Invalid action"
            break
        ctx_error = (err.get("ctx") or {}).get("error")
        if isinstance(ctx_error, ValueError):
            message = str(ctx_error)
            break
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in errors
    )
    return message, details


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Access handler failed",
            path=request.url.path,
            code=exc.code,
            error=exc.error,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error, exc.details),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message, details = _validation_message(exc)
    logger.info("Rejected malformed request", path=request.url.path, error=message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, details),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing and framework errors (404, 405) in the shared envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )
    details = None if settings.is_production else f"{type(exc).__name__}: {exc}"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal error", details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
