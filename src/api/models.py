"""
Pydantic request and response models for the Visitor Calendar Sync API.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Request Models
# =============================================================================


class DisconnectCalendarRequest(BaseModel):
    """Request to disconnect a staff member's calendar."""

    staff_id: str = Field(..., min_length=1, description="Staff member ID")
    provider: str = Field(..., description="Calendar provider (google, outlook)")

    @field_validator("staff_id")
    @classmethod
    def validate_staff_id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("staff_id cannot be empty")
        return v.strip()


# =============================================================================
# Response Models
# =============================================================================


class CalendarConnectResponse(BaseModel):
    """Response with the provider's consent URL."""

    authorization_url: str = Field(..., description="URL to redirect the staff member to")


class CalendarStatusResponse(BaseModel):
    """Calendars a staff member has connected."""

    staff_id: str = Field(..., description="Staff member ID")
    providers: list[str] = Field(default_factory=list, description="Connected providers")
    google: bool = Field(default=False, description="Google Calendar connected")
    outlook: bool = Field(default=False, description="Outlook Calendar connected")


class DisconnectCalendarResponse(BaseModel):
    """Result of a disconnect request."""

    success: bool = Field(..., description="Whether a connected calendar was removed")
    message: str = Field(..., description="Human-readable result")


class ErrorResponse(BaseModel):
    """Error information for failed requests."""

    error_type: Literal[
        "http_error",
        "calendar_error",
        "internal_error",
    ] = Field(..., description="Type of error")
    message: str = Field(..., description="Human-readable error message")
    provider: Optional[str] = Field(None, description="Calendar provider involved")
    retryable: bool = Field(default=False, description="Whether request can be retried")
    request_id: Optional[str] = Field(None, description="X-Request-ID of the failed request")


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    database_connected: bool = Field(..., description="Database connection status")
    google_configured: bool = Field(..., description="Google OAuth credentials present")
    outlook_configured: bool = Field(..., description="Outlook OAuth credentials present")
