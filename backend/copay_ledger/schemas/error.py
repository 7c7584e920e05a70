"""Error response schema shared by all endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    timestamp: datetime
    path: str
    error_code: str
    message: str
    retryable: bool
    details: dict[str, Any] = Field(default_factory=dict)
