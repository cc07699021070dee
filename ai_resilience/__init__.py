"""
AI Resilience: response cache and offline request queue for AI clients.
"""

from ai_resilience.cache import ResponseCache, is_expired
from ai_resilience.main import ResilienceLayer, create_resilience_layer
from ai_resilience.queue import OfflineQueue
from ai_resilience.services import OfflineAIService

__all__ = [
    "OfflineAIService",
    "OfflineQueue",
    "ResilienceLayer",
    "ResponseCache",
    "create_resilience_layer",
    "is_expired",
]
