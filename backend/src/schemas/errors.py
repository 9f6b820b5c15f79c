"""Error response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Machine-readable error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human readable message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Envelope returned for every error status."""

    error: ErrorDetail
    request_id: Optional[str] = None
    timestamp: datetime
