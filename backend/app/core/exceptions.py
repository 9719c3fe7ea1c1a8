"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging

from fastapi import Request, status
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InvalidInputError(AppException):
    """Raised when request input is missing or malformed."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class TokenRevokedError(AppException):
    """Raised when token has been revoked."""

    def __init__(self):
        super().__init__(
            message="Token has been revoked",
            error_code="ERR_AUTH_002",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class DuplicatePhoneError(AppException):
    """Raised when registering a phone number that already has an account."""

    def __init__(self):
        super().__init__(
            message="phone already registered",
            error_code="ERR_AUTH_003",
            status_code=status.HTTP_409_CONFLICT
        )


class IdempotencyConflictError(AppException):
    """Raised when a request id is reused for another operation or by another actor."""

    def __init__(self, request_id: str):
        super().__init__(
            message="idempotency key conflict",
            error_code="ERR_IDEMPOTENCY_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"request_id": request_id}
        )


class RequestInProgressError(AppException):
    """Raised when a request id is reserved but its write has not completed yet."""

    def __init__(self, request_id: str):
        super().__init__(
            message="request is in progress",
            error_code="ERR_IDEMPOTENCY_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"request_id": request_id}
        )


class EntryAlreadyDeletedError(AppException):
    """Raised when soft-deleting an entry that is already deleted."""

    def __init__(self, entry_id: int):
        super().__init__(
            message="entry already deleted",
            error_code="ERR_LEDGER_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"id": entry_id}
        )


class StorageError(AppException):
    """Raised when the database fails underneath a request. Never carries driver detail."""

    def __init__(self, message: str = "An internal storage error occurred"):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# Global Exception Handlers

def _error_body(error_code: str, message: Any, details: Dict[str, Any]) -> Dict[str, Any]:
    # "error" mirrors "message" for the web frontend
    return {
        "error_code": error_code,
        "message": message,
        "error": message,
        "details": details
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for HTTPException (FastAPI and routing errors) with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(error_code, exc.detail, {}),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors. Malformed input is a 400, like every other validation failure."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            "ERR_VALIDATION",
            "invalid request",
            {"errors": jsonable_errors(exc)}
        )
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw exception object, which is not JSON serializable
    return [
        {key: value for key, value in error.items() if key in ("loc", "msg", "type")}
        for error in exc.errors()
    ]


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("ERR_INTERNAL_SERVER", "An internal server error occurred", {})
    )
