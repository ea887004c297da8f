"""
Error handling for the HTTP servers

FastAPI lets us define custom handlers for specific exception types.
When an exception is raised anywhere in the request, FastAPI catches it
and calls the matching handler to return a formatted error response.

Handlers defined here:
- Validation errors (request does not match the generated OpenAPI schema)
- Domain errors (raised deliberately by handlers and dependencies)
- Generic errors (unexpected problems)
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime, timezone
import uuid
from typing import Optional

from api.schemas.error import ErrorResponse, ErrorDetail, ValidationErrorResponse
from utils.logger import get_logger
from models.enums import LogCategory
import json

log = get_logger().for_category(LogCategory.API)


class DomainError(Exception):
    """Base class for domain-specific errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        status_code: int = 400
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)


class AuthServiceUnavailableError(DomainError):
    """Auth is enabled but no auth client is attached to the app"""
    def __init__(self):
        super().__init__(
            code="AUTH_UNAVAILABLE",
            message="Authentication service is not configured",
            status_code=503
        )


class ShuttingDownError(DomainError):
    """Process is draining; new work is refused"""
    def __init__(self, reason: Optional[str]):
        super().__init__(
            code="SHUTTING_DOWN",
            message="Service is shutting down",
            details={"reason": reason},
            status_code=503
        )


def get_request_id(request: Request) -> str:
    """Request id assigned by the logging middleware, or a fresh one."""
    request_id = getattr(request.state, "request_id", None)
    return request_id or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with FastAPI app"""

    # Handle validation errors (bad request format)
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        request_id = get_request_id(request)
        errors = exc.errors()

        log.warn(
            f"Validation error ({request_id}): {len(errors)} errors",
            path=request.url.path
        )

        validation_errors = []
        for error in errors:
            field = ".".join(str(x) for x in error["loc"][1:])  # Skip "body" / "query"
            validation_errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"]
            })

        response = ValidationErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details={"error_count": len(errors)},
                timestamp=datetime.now(timezone.utc)
            ),
            validation_errors=validation_errors,
            request_id=request_id
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=json.loads(response.model_dump_json())
        )

    # Handle domain-specific errors (our custom exceptions)
    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        """Handle domain-specific errors"""
        request_id = get_request_id(request)

        log.warn(f"Domain error ({request_id}): {exc.code} - {exc.message}")

        response = ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                timestamp=datetime.now(timezone.utc)
            ),
            request_id=request_id
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=json.loads(response.model_dump_json())
        )

    # Handle unexpected errors (server errors)
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        request_id = get_request_id(request)

        log.error(
            f"Unexpected error ({request_id}): {type(exc).__name__}: {str(exc)}",
            exception_type=type(exc).__name__,
            path=request.url.path
        )

        response = ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred. Please try again.",
                details={"request_id": request_id},
                timestamp=datetime.now(timezone.utc)
            ),
            request_id=request_id
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=json.loads(response.model_dump_json())
        )
