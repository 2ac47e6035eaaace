"""Health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service status plus identity store reachability."""

    status: Literal["ok", "degraded"] = Field(default="ok", description="Service status")
    service: str = Field(default="gatehouse")
    version: str
    environment: str = Field(description="Current app environment (dev or prod)")
    database: Literal["connected", "disconnected"]
