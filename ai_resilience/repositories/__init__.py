"""
Persistence package.
"""

from ai_resilience.repositories.kv_store import InMemoryKeyValueStore, KeyValueStore
from ai_resilience.repositories.redis_repository import (
    RedisKeyValueStore,
    create_redis_pool,
)

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "create_redis_pool",
]
