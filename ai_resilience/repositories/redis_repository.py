"""
Redis-backed key-value store.

Sandi Metz Principles:
- Single Responsibility: Redis data access
- Small methods: Each operation isolated
- Dependency Injection: Redis pool injected
"""

from typing import Iterable, Optional

from redis.asyncio import ConnectionPool, Redis

from ai_resilience.config import AppConfig
from ai_resilience.exceptions import StoreError
from ai_resilience.repositories.kv_store import KeyValueStore
from ai_resilience.utils.logger import get_logger

logger = get_logger(__name__)


def create_redis_pool(app_config: AppConfig) -> ConnectionPool:
    """
    Create Redis connection pool.

    Args:
        app_config: Application configuration

    Returns:
        Redis connection pool
    """
    return ConnectionPool.from_url(
        app_config.redis_url,
        max_connections=app_config.redis_max_connections,
        decode_responses=True,
    )


class RedisKeyValueStore(KeyValueStore):
    """
    Key-value store on top of Redis.

    Every key is written as ``<namespace>:<key>`` so the store can share
    a Redis database with the rest of the application.
    """

    def __init__(self, pool: ConnectionPool, namespace: str = "ai_resilience"):
        """
        Initialize store.

        Args:
            pool: Redis connection pool
            namespace: Prefix applied to every key
        """
        self._pool = pool
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            async with Redis(connection_pool=self._pool) as client:
                return await client.get(self._key(key))
        except Exception as e:
            logger.error("Redis get failed", key=key, error=str(e))
            raise StoreError(f"Failed to read {key}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.set(self._key(key), value)
        except Exception as e:
            logger.error("Redis set failed", key=key, error=str(e))
            raise StoreError(f"Failed to write {key}") from e

    async def delete(self, key: str) -> None:
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.delete(self._key(key))
        except Exception as e:
            logger.error("Redis delete failed", key=key, error=str(e))
            raise StoreError(f"Failed to delete {key}") from e

    async def delete_many(self, keys: Iterable[str]) -> None:
        namespaced = [self._key(key) for key in keys]
        if not namespaced:
            return

        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.delete(*namespaced)
        except Exception as e:
            logger.error("Redis batch delete failed", count=len(namespaced), error=str(e))
            raise StoreError(f"Failed to delete {len(namespaced)} keys") from e

    async def ping(self) -> bool:
        """
        Ping Redis server.

        Returns:
            True if connected, False otherwise
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.ping()
                return True
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False
