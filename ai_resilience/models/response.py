"""
AI result models.

Sandi Metz Principles:
- Small classes with clear purpose
- Immutable response data
- Clear naming conventions
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ResponseSource(str, Enum):
    """Where a result handed to the caller came from."""

    API = "api"
    CACHE = "cache"
    QUEUED = "queued"


class AIResult(BaseModel):
    """Result of a resilient AI request."""

    result: Optional[Any] = Field(None, description="AI response, None when queued")
    source: ResponseSource = Field(..., description="Origin of the result")
    request_id: Optional[str] = Field(None, description="Queue id when deferred")

    @classmethod
    def from_api(cls, result: Any) -> "AIResult":
        """Create result for a fresh backend response."""
        return cls(result=result, source=ResponseSource.API)

    @classmethod
    def from_cache(cls, result: Any) -> "AIResult":
        """Create result for a cache hit."""
        return cls(result=result, source=ResponseSource.CACHE)

    @classmethod
    def queued(cls, request_id: str) -> "AIResult":
        """Create result for a deferred request."""
        return cls(source=ResponseSource.QUEUED, request_id=request_id)

    @property
    def is_queued(self) -> bool:
        """Check if the request was deferred."""
        return self.source == ResponseSource.QUEUED
