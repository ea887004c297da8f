"""
Error schemas - Pydantic models for error responses

Every server built by the api package renders failures in this shape, so
clients and probes can parse errors the same way everywhere.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Detailed error information"""
    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional context (field names, offending values, etc.)"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the error occurred"
    )


class ErrorResponse(BaseModel):
    """API error response - standardized format"""
    error: ErrorDetail = Field(description="Error information")
    request_id: Optional[str] = Field(None, description="Request ID for logging/debugging")

    class Config:
        json_schema_extra = {
            "example": {
                "error": {
                    "code": "UNAUTHENTICATED",
                    "message": "failed to extract required session cookie",
                    "details": None,
                    "timestamp": "2025-11-26T10:30:00Z"
                },
                "request_id": "5b0c8d1e-6a43-4b7e-9a7f-3f1f5d3c2e10"
            }
        }


class ValidationErrorResponse(BaseModel):
    """Validation error - when the request does not match the OpenAPI schema"""
    error: ErrorDetail = Field(description="Error information")
    validation_errors: list[Dict[str, Any]] = Field(
        description="Per-field validation errors"
    )
    request_id: Optional[str] = Field(None, description="Request ID for logging/debugging")

    class Config:
        json_schema_extra = {
            "example": {
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": {"error_count": 1},
                    "timestamp": "2025-11-26T10:30:00Z"
                },
                "validation_errors": [
                    {
                        "field": "name",
                        "message": "Field required",
                        "type": "missing"
                    }
                ],
                "request_id": "5b0c8d1e-6a43-4b7e-9a7f-3f1f5d3c2e10"
            }
        }
