"""Map the exception hierarchy onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BookStudioError,
    EventBusError,
    JobStateError,
    NotFoundError,
    UnsupportedExportFormatError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; first match wins
_STATUS_BY_ERROR: list[tuple[type[BookStudioError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (JobStateError, 409),
    (UnsupportedExportFormatError, 501),
    (EventBusError, 503),
]


def status_for(error: BookStudioError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def error_response(status: int, error: str, details: str = "", hint: str = "") -> JSONResponse:
    body = {"error": error}
    if details:
        body["details"] = details
    if hint:
        body["hint"] = hint
    return JSONResponse(status_code=status, content=body)


async def _handle_book_studio_error(request: Request, exc: BookStudioError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return error_response(status, exc.message, details=str(exc))
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status, exc.message)
    return error_response(status, exc.message)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return error_response(400, "Invalid request", details=problems)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error", details=str(exc))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(BookStudioError, _handle_book_studio_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
