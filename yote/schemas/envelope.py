"""
Yote — Response and Request Schemas
====================================

What:  Pydantic models for the fixed parts of the API contract.

Resource payloads are documents whose fields follow the ORM models, so
success envelopes are plain dicts built in the route layer:

    {"success": true, "task": {...}}
    {"success": true, "tasks": [...], "pagination": {"page": 1, "per": 20}}

Everything that can fail renders as ErrorResponse.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Failure envelope returned with a 4xx/5xx status.

    The cache client reads `message` from this body and stores it as the
    `error` of the slot or list it was fetching.
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class TaskCompleteUpdate(BaseModel):
    complete: bool = Field(description="New completion flag")


class TaskStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=50, description="New status label")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    documents: Dict[str, int] = Field(default_factory=dict, description="Row count per table")
    uptime_seconds: float = Field(description="Seconds since service started")
