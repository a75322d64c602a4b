"""
Application error taxonomy and the JSON error envelope.

Every error leaving a route is rendered as::

    {"error": {"code": "...", "message": "...", "timestamp": "..."}}

with an optional ``reason`` for authentication failures so the frontend can
tell an expired session from a forged one.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class ErrorCode(str, enum.Enum):
    """Stable error codes exposed to clients."""
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ADMIN_ACCESS_DENIED = "ADMIN_ACCESS_DENIED"
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVER_ERROR = "SERVER_ERROR"


class AppError(Exception):
    """Base class for errors mapped to an HTTP status and error code."""

    code: ErrorCode = ErrorCode.SERVER_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Something went wrong, please try again later"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.message = message or self.message
        self.reason = reason
        self.details = details
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.reason:
            body["reason"] = self.reason
        if self.details:
            body["details"] = self.details
        return {"error": body}


class Unauthorized(AppError):
    code = ErrorCode.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Please log in first"


class Forbidden(AppError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have access to this resource"


class AdminAccessDenied(Forbidden):
    code = ErrorCode.ADMIN_ACCESS_DENIED
    message = "Admin access denied"


class PaymentRequired(AppError):
    code = ErrorCode.INSUFFICIENT_POINTS
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    message = "Not enough points for this operation"


class InsufficientPoints(AppError):
    """Raised by the ledger when a debit would drive the balance below zero."""

    code = ErrorCode.INSUFFICIENT_POINTS
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Insufficient points"

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient points. Required: {required}, Available: {available}",
            details={"required": required, "available": available},
        )
        self.required = required
        self.available = available


class DailyLimitExceeded(AppError):
    code = ErrorCode.DAILY_LIMIT_EXCEEDED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Daily usage limit reached for this tool"

    def __init__(self, tool_id: str, limit: int):
        super().__init__(
            f"Daily usage limit of {limit} reached for {tool_id}",
            details={"toolId": tool_id, "limit": limit},
        )


class ValidationError(AppError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input, please check and try again"


class NotFound(AppError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Conflict(AppError):
    code = ErrorCode.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"


class ServerError(AppError):
    pass


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code.value}")

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(details={"errors": [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in exc.errors()
    ]})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    error = ServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON envelope handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
