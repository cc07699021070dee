"""
Response cache package.
"""

from ai_resilience.cache.response_cache import ResponseCache, is_expired

__all__ = ["ResponseCache", "is_expired"]
