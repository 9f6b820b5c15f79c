"""Health check schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ServiceStatus(BaseModel):
    """Reachability of one backing service."""

    status: Literal["healthy", "unhealthy"]
    message: str
    latency_ms: Optional[float] = Field(None, description="Round trip of the probe")


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    version: str
    services: dict[str, ServiceStatus]
    timestamp: str
