"""
Composition root.

Following Sandi Metz:
- Single Responsibility: Wiring and lifecycle of shared components
- Small methods: Each lifecycle stage isolated
- Clear naming: Descriptive function names
"""

from typing import Optional

from ai_resilience.cache.response_cache import ResponseCache
from ai_resilience.config import AppConfig, config
from ai_resilience.exceptions import CacheError
from ai_resilience.network.reachability import (
    ReachabilityObserver,
    TcpReachabilityProbe,
)
from ai_resilience.queue.offline_queue import OfflineQueue
from ai_resilience.repositories.kv_store import KeyValueStore
from ai_resilience.repositories.redis_repository import (
    RedisKeyValueStore,
    create_redis_pool,
)
from ai_resilience.services.offline_ai_service import AIRequestFn, OfflineAIService
from ai_resilience.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class ResilienceLayer:
    """
    Owns the cache, queue and service of one process.

    Single Responsibility: Lifecycle management of shared resources.
    """

    def __init__(
        self,
        request_fn: AIRequestFn,
        store: Optional[KeyValueStore] = None,
        reachability: Optional[ReachabilityObserver] = None,
        app_config: Optional[AppConfig] = None,
    ):
        """
        Wire components.

        Args:
            request_fn: Performs the backend call for a request type and payload
            store: Persistent store (Redis from configuration if None)
            reachability: Connectivity source (TCP probe from configuration if None)
            app_config: Application configuration (global config if None)
        """
        self.config = app_config or config
        self._redis_pool = None

        if store is None:
            self._redis_pool = create_redis_pool(self.config)
            store = RedisKeyValueStore(self._redis_pool, self.config.store_namespace)
        if reachability is None:
            reachability = TcpReachabilityProbe(
                self.config.reachability_host,
                self.config.reachability_port,
                self.config.reachability_timeout_seconds,
            )

        self.store = store
        self.reachability = reachability
        self.cache = ResponseCache(store, self.config.response_cache_config())
        self.queue = OfflineQueue(
            store, reachability, self.config.offline_queue_config()
        )
        self.service = OfflineAIService(self.cache, self.queue, reachability, request_fn)

    async def startup(self) -> None:
        """Purge stale cache entries and resume queued requests."""
        logger.info("Starting resilience layer", env=self.config.app_env)
        try:
            swept = await self.cache.sweep_expired()
            logger.info("Startup cache sweep", removed=swept)
        except CacheError as e:
            logger.warning("Startup cache sweep failed", error=str(e))

        await self.queue.initialize()
        logger.info("Resilience layer started", pending=self.queue.pending_count())

    async def shutdown(self) -> None:
        """Stop background work and release connections."""
        logger.info("Shutting down resilience layer")
        await self.queue.shutdown()
        if self._redis_pool is not None:
            await self._redis_pool.disconnect()
            logger.info("Redis pool closed")


def create_resilience_layer(
    request_fn: AIRequestFn,
    store: Optional[KeyValueStore] = None,
    reachability: Optional[ReachabilityObserver] = None,
    app_config: Optional[AppConfig] = None,
) -> ResilienceLayer:
    """
    Configure logging and build the resilience layer.

    Args:
        request_fn: Performs the backend call for a request type and payload
        store: Persistent store (Redis from configuration if None)
        reachability: Connectivity source (TCP probe from configuration if None)
        app_config: Application configuration (global config if None)

    Returns:
        Wired, not yet started, resilience layer
    """
    app_config = app_config or config
    setup_logging(app_config.log_level)
    return ResilienceLayer(request_fn, store, reachability, app_config)
