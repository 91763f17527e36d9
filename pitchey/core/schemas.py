"""Core schema definitions for standardized API responses.

Every endpoint answers with the same envelope:

    {"success": true, "data": {...}}
    {"success": false, "error": {"code": "NOT_FOUND", "message": "...", "details": null}}
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    success: bool = True
    data: T | None = None
    error: dict[str, Any] | None = None


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional error context")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: ErrorDetail


def success_response(data: T) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data)
