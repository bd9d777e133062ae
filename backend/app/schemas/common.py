"""
NoteKeep Backend — Shared Response Schemas
============================================

What:  The response envelope every endpoint uses, plus the error and health
       payloads.
How:   `ApiResponse[T]` is a generic Pydantic model, so each route declares
       `response_model=ApiResponse[NoteData]` and the OpenAPI docs show the
       concrete `data` shape.

Envelope:
    Success: {"success": true,  "data": {...}, "message": "..."}
    Failure: {"success": false, "error": "not_found", "message": "...",
              "details": {...}, "request_id": "a1b2c3d4"}
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = Field(default=True, description="Whether the request succeeded")
    data: Optional[DataT] = Field(default=None, description="Payload on success")
    message: Optional[str] = Field(default=None, description="Human-readable status message")


class MessageResponse(BaseModel):
    """Envelope for endpoints that only acknowledge an action."""
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    google_oauth: str = Field(description="Google sign-in: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
