"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ProCryptomancerError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(ProCryptomancerError):
    """Upstream fetch failed and there is no value to fall back on."""

    def __init__(self, message: str = "Upstream price service unavailable", status_code: int = 503):
        super().__init__(message, status_code=status_code)


class UpstreamTimeout(UpstreamUnavailable):
    def __init__(self, key: str, timeout: float | None):
        super().__init__(f"Upstream fetch for {key} timed out after {timeout}s", status_code=504)
        self.key = key
        self.timeout = timeout


class UserExistsError(ProCryptomancerError):
    def __init__(self, email: str):
        super().__init__(f"User already exists: {email}", status_code=409)


class UserNotFoundError(ProCryptomancerError):
    def __init__(self, email: str):
        super().__init__(f"User not found: {email}", status_code=404)


class InvalidCredentialsError(ProCryptomancerError):
    def __init__(self):
        super().__init__("Incorrect password", status_code=401)


class SubmissionNotFoundError(ProCryptomancerError):
    def __init__(self, submission_id: str):
        super().__init__(f"Submission not found: {submission_id}", status_code=404)


class ForbiddenError(ProCryptomancerError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ProCryptomancerError)
    async def handle_service_error(_request: Request, exc: ProCryptomancerError):
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_request: Request, exc: RequestValidationError):
        return JSONResponse({"ok": False, "error": _first_validation_message(exc)}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse({"ok": False, "error": message}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"ok": False, "error": "Internal server error"},
            status_code=500,
        )
