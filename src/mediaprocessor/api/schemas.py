"""Pydantic response schemas for the media processor API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    concurrent_requests: int = Field(description="Transformations currently running")
    queue_depth: int = Field(description="Requests waiting for a compute slot")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
