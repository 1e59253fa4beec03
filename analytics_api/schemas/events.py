"""
Pydantic schemas for event ingestion.

Only `client_id` is required. Unknown fields are dropped. `accessToken`
is read by auth derivation and never stored.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Date-like input: ISO-8601 string or epoch milliseconds
DateInput = Union[str, int, float]


class IngestBody(BaseModel):
    """Fields shared by every ingestion body."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    client_id: str = Field(
        ...,
        min_length=1,
        description="Tenant/project key the event belongs to",
        examples=["c1"],
    )
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    access_token: Optional[str] = Field(default=None, alias="accessToken")

    def stored_fields(self) -> Dict[str, Any]:
        """Fields the caller actually sent, minus credentials."""
        return self.model_dump(exclude_unset=True, exclude={"access_token"})


class EnrichmentOverrides(BaseModel):
    """Derived fields a caller may supply directly; supplied values win."""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_type: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    org: Optional[str] = None
    postal: Optional[str] = None
    loc: Optional[str] = None


class ErrorIngestBody(EnrichmentOverrides, IngestBody):
    """
    Request body for POST /ingest.

    Example:
        {
            "client_id": "c1",
            "error_type": "TypeError",
            "severity": "high",
            "message": "Cannot read properties of undefined",
            "url": "https://app.example.com/checkout",
            "tags": ["checkout"]
        }
    """

    error_type: Optional[str] = None
    severity: Optional[str] = None
    message: Optional[str] = None
    stack_trace: Optional[str] = None
    source: Optional[str] = None
    environment: Optional[str] = None
    url: Optional[str] = None
    component_stack: Optional[str] = None
    custom_data: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    occurrence_count: Optional[int] = Field(default=None, ge=1)
    status: Optional[str] = None
    resolved_by: Optional[str] = None
    first_occurrence: Optional[DateInput] = None
    last_occurrence: Optional[DateInput] = None
    resolved_at: Optional[DateInput] = None


class LogIngestBody(IngestBody):
    """
    Request body for POST /log.

    Example:
        {"client_id": "c1", "message": "hi", "level": "info"}
    """

    level: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    environment: Optional[str] = None


class NotFoundIngestBody(EnrichmentOverrides, IngestBody):
    """Request body for POST /track-404."""

    url: Optional[str] = None
    path: Optional[str] = None
    referrer: Optional[str] = None


class IngestResponse(BaseModel):
    """Response after successfully ingesting an event."""

    status: Literal["success"] = "success"
    id: str = Field(..., description="ID of the stored event")


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
