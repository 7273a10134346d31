"""
Custom exceptions and error handlers for consistent error responses.

Every error leaves the API in one envelope:
    {"error_code": ..., "error": ..., "message": ..., "details": {...}}
`error` and `message` carry the same text; the mobile screens read either.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
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


class FieldValidationError(AppException):
    """Raised when a required field is missing or malformed."""
    
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION",
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


class ConflictError(AppException):
    """Raised when client-supplied data collides with an existing row."""
    
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class IdentifierExhaustedError(AppException):
    """Raised when a capped identifier allocation runs out of attempts."""
    
    def __init__(self, kind: str, attempts: int):
        super().__init__(
            message=f"Could not allocate a free {kind} identifier",
            error_code="ERR_ID_EXHAUSTED",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"kind": kind, "attempts": attempts}
        )


class DatastoreError(AppException):
    """Raised when the datastore cannot serve a query."""
    
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            message=message,
            error_code="ERR_DATASTORE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
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


class RevocationUnavailableError(AppException):
    """Raised when logout cannot record the token in the blacklist."""

    def __init__(self):
        super().__init__(
            message="Logout is temporarily unavailable. Please try again.",
            error_code="ERR_AUTH_004",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class AccountNotApprovedError(AppException):
    """Raised when an employee account has not been approved yet."""
    
    def __init__(self, account_status: str):
        message = "Your account is pending approval from admin."
        if account_status == "rejected":
            message = "Your account has been rejected. Please contact admin."
        super().__init__(
            message=message,
            error_code="ERR_AUTH_003",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"status": account_status}
        )


def _error_body(error_code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {
        "error_code": error_code,
        "error": message,
        "message": message,
        "details": details or {}
    }


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(exc.error_code, exc.message, exc.details))
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }
    
    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")
    
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(error_code, exc.detail),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for request validation errors (missing or malformed fields)."""
    errors = exc.errors()
    fields = [".".join(str(part) for part in err.get("loc", ())[1:]) for err in errors]
    message = "Missing or invalid fields: " + ", ".join(f for f in fields if f) if fields else "Validation error"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(_error_body("ERR_VALIDATION", message, {"errors": errors}))
    )


async def datastore_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handler for database failures. Internals stay in the server log."""
    logger.error("Datastore failure on %s %s: %s", request.method, request.url.path, exc)
    error = DatastoreError()
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.error_code, error.message)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)
    
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("ERR_INTERNAL_SERVER", "An internal server error occurred")
    )
