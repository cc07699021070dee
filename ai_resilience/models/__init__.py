"""
Models package for AI Resilience.

Exports all model classes for easy imports throughout the application.
"""

# Cache models
from ai_resilience.models.cache_entry import (
    CacheEntry,
    CacheIndex,
    CacheIndexRecord,
    CacheStats,
)

# Queue models
from ai_resilience.models.queue import (
    DrainResult,
    QueuedRequest,
    QueueState,
    QueueStats,
    RequestType,
)

# Response models
from ai_resilience.models.response import AIResult, ResponseSource

__all__ = [
    # Cache
    "CacheEntry",
    "CacheIndex",
    "CacheIndexRecord",
    "CacheStats",
    # Queue
    "DrainResult",
    "QueuedRequest",
    "QueueState",
    "QueueStats",
    "RequestType",
    # Response
    "AIResult",
    "ResponseSource",
]
