"""
Offline queue models.

Sandi Metz Principles:
- Small classes with clear purpose
- Clear naming conventions
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RequestType(str, Enum):
    """Kinds of AI requests that can be deferred."""

    REPLY = "reply"
    SCREENSHOT = "screenshot"
    STARTER = "starter"
    DATE_IDEA = "date_idea"
    INTEREST = "interest"
    RED_FLAG = "red_flag"
    TIMING = "timing"


class QueuedRequest(BaseModel):
    """AI request waiting for connectivity."""

    id: str = Field(..., min_length=1, description="Unique request id")
    type: RequestType = Field(..., description="Request kind, meaningful to executor")
    params: Dict[str, Any] = Field(..., description="Opaque request payload")
    timestamp: float = Field(..., ge=0, description="Enqueue time (epoch seconds)")
    retry_count: int = Field(default=0, ge=0, description="Attempts so far")
    partner_id: Optional[str] = Field(None, description="Conversation partner id")
    partner_name: Optional[str] = Field(None, description="Partner display name")
    preview: Optional[str] = Field(None, description="Short UI description")


class QueueState(BaseModel):
    """Snapshot of the offline queue handed to subscribers."""

    model_config = ConfigDict(frozen=True)

    requests: Tuple[QueuedRequest, ...] = ()
    is_processing: bool = False
    last_processed: Optional[float] = None

    @property
    def pending(self) -> int:
        """Number of queued requests."""
        return len(self.requests)


class QueueStats(BaseModel):
    """Offline queue statistics."""

    pending: int = Field(..., ge=0)
    oldest_timestamp: Optional[float] = None
    counts_by_type: Dict[str, int] = Field(default_factory=dict)


class DrainResult(BaseModel):
    """Outcome of one drain run."""

    processed: int = Field(default=0, ge=0, description="Requests completed")
    failed: int = Field(default=0, ge=0, description="Requests dropped after retries")
