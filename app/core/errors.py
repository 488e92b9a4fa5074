"""API error types and the FastAPI handlers that render them as `{message, code}` JSON."""

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class SessionErrorCode(str, Enum):
    """Stable machine codes returned by the session gateway; clients branch on these."""

    NO_SESSION = "NO_SESSION"
    TOKEN_INVALID = "TOKEN_INVALID"
    SESSION_MISMATCH = "SESSION_MISMATCH"
    SESSION_INVALID = "SESSION_INVALID"
    USER_MISMATCH = "USER_MISMATCH"
    SESSION_ERROR = "SESSION_ERROR"


SESSION_ERROR_MESSAGES: dict[SessionErrorCode, str] = {
    SessionErrorCode.NO_SESSION: "No session ID provided",
    SessionErrorCode.TOKEN_INVALID: "Invalid or expired access token",
    SessionErrorCode.SESSION_MISMATCH: "Access token does not belong to this session",
    SessionErrorCode.SESSION_INVALID: "Invalid or expired session",
    SessionErrorCode.USER_MISMATCH: "Access token does not belong to the session user",
    SessionErrorCode.SESSION_ERROR: "Session validation error",
}


class ApiError(Exception):
    """Base class for errors mapped to an HTTP status, a stable code, and a message.

    `extra` holds additional top-level body fields (e.g. `required`, `needsVerification`).
    """

    status_code: int = 400
    code: str | None = None
    default_message: str = "Bad request"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.extra = extra or {}
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.code:
            body["code"] = self.code
        body.update(self.extra)
        return body


class BadRequestError(ApiError):
    status_code = 400
    default_message = "Bad request"


class AuthenticationError(ApiError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication required"


class PermissionDeniedError(ApiError):
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Insufficient permissions"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class MaintenanceModeError(ApiError):
    status_code = 423
    code = "MAINTENANCE_MODE"
    default_message = "The system is under maintenance. Please try again later."


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"


class SessionError(ApiError):
    """Gateway rejection: 401 for every code except SESSION_ERROR (500)."""

    def __init__(self, code: SessionErrorCode) -> None:
        self.status_code = 500 if code is SessionErrorCode.SESSION_ERROR else 401
        super().__init__(SESSION_ERROR_MESSAGES[code], code=code.value)
        self.session_code = code


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers so every rejection is structured JSON with a `message`."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "api_error path=%s method=%s status=%s code=%s",
                request.url.path,
                request.method,
                exc.status_code,
                exc.code,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled_error path=%s method=%s", request.url.path, request.method
        )
        return JSONResponse(status_code=500, content={"message": "Internal server error"})
