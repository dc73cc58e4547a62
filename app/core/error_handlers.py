"""HTTP error handlers for FastAPI application.

This module provides the bridge between application exceptions and HTTP responses.
Every failure is answered with `{"error": <reason>, "detail": <reason>}` so clients
can read a short reason from the same key whatever went wrong.
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import (
    AppException,
    NotFoundError,
    AlreadyExistsError,
    ConflictError,
    ValidationError,
    AuthenticationError,
    InsufficientPermissionsError,
    RateLimitedError,
)
from app.utils.logger import logger


def error_response(
    status_code: int,
    reason: str,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    """Build the JSON error body shared by every handler."""
    content = {"error": reason, "detail": reason, **extra}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, str(exc))


async def already_exists_handler(
    request: Request, exc: AlreadyExistsError
) -> JSONResponse:
    """
    Convert an AlreadyExistsError into an HTTP 400 JSON response.

    A duplicate is a conflict with the current state, reported like every
    other conflict.
    """
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """
    Convert a ConflictError (already decided, already applied, slots full,
    mission not open) into an HTTP 400 JSON response.
    """
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """
    Convert a ValidationError into an HTTP 400 JSON response.

    Parameters:
        request (Request): The incoming HTTP request.
        exc (ValidationError): The domain validation error; if `exc.field` is set, the response will include a `field` key indicating the related field.
    """
    extra = {"field": exc.field} if exc.field else {}
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc), **extra)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Report malformed payloads as 400 with the first failing field.

    The full pydantic error list is kept under `errors`.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "Invalid request")
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        f"{field}: {reason}" if field else reason,
        field=field or None,
        errors=[
            {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
            for error in errors
        ],
    )


async def insufficient_permissions_handler(
    request: Request, exc: InsufficientPermissionsError
) -> JSONResponse:
    return error_response(status.HTTP_403_FORBIDDEN, str(exc))


async def authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    """
    Convert an AuthenticationError into a 401 Unauthorized JSON response that includes a WWW-Authenticate header.
    """
    return error_response(
        status.HTTP_401_UNAUTHORIZED,
        str(exc),
        headers={"WWW-Authenticate": "Bearer"},  # RFC 6750 challenge
    )


async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
    return error_response(status.HTTP_429_TOO_MANY_REQUESTS, str(exc))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Give framework HTTP errors (401 from the bearer scheme, 404 routes) the same body."""
    reason = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, reason, headers=getattr(exc, "headers", None))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle unhandled application-level exceptions and produce a standardized 500 Internal Server Error response.

    The message is logged, never returned.
    """
    logger.error(f"Unhandled application error on {request.url.path}: {exc.message}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "An internal error occurred"
    )


def register_exception_handlers(app) -> None:
    """
    Register the application's domain-to-HTTP exception handlers on a FastAPI app.

    Registers handlers in order from most specific to most general so that subclassed
    exceptions are matched before their parent types. The following mappings are added:
    NotFoundError -> 404, AlreadyExistsError and ConflictError -> 400,
    ValidationError and request validation -> 400 (includes optional `field`),
    InsufficientPermissionsError -> 403, AuthenticationError -> 401 (adds
    `WWW-Authenticate: Bearer`), RateLimitedError -> 429 and AppException -> 500.

    Parameters:
        app: The FastAPI application instance to which the exception handlers will be attached.
    """
    # CRUD exception handlers
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(AlreadyExistsError, already_exists_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Auth exception handlers (specific before general)
    app.add_exception_handler(
        InsufficientPermissionsError, insufficient_permissions_handler
    )
    app.add_exception_handler(AuthenticationError, authentication_error_handler)

    app.add_exception_handler(RateLimitedError, rate_limited_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Catch-all for unhandled application exceptions
    app.add_exception_handler(AppException, app_exception_handler)
