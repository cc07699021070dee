"""
Offline-aware AI request service.

Orchestrates the response cache, the offline queue and the AI backend.

Order: Response cache -> AI backend -> Offline queue

Sandi Metz Principles:
- Single Responsibility: Request orchestration
- Small methods: Each step isolated
- Dependency Injection: Cache, queue, reachability and backend injected
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional

from ai_resilience.cache.response_cache import ResponseCache
from ai_resilience.exceptions import CacheError, ConnectivityError
from ai_resilience.models.queue import QueuedRequest, RequestType
from ai_resilience.models.response import AIResult
from ai_resilience.network.reachability import ReachabilityObserver
from ai_resilience.queue.offline_queue import OfflineQueue
from ai_resilience.utils.logger import get_logger, log_error

logger = get_logger(__name__)

AIRequestFn = Callable[[RequestType, Dict[str, Any]], Awaitable[Any]]

CONNECTIVITY_ERRORS = (
    ConnectivityError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


class OfflineAIService:
    """
    AI request service that survives lost connectivity.

    Registers itself as the queue executor so deferred requests are
    replayed through the same backend call and cached on success.
    """

    def __init__(
        self,
        cache: ResponseCache,
        queue: OfflineQueue,
        reachability: ReachabilityObserver,
        request_fn: AIRequestFn,
        cacheable_types: FrozenSet[RequestType] = frozenset({RequestType.REPLY}),
    ):
        """
        Initialize service.

        Args:
            cache: Response cache
            queue: Offline queue
            reachability: Connectivity source
            request_fn: Performs the backend call for a request type and payload
            cacheable_types: Request types whose results are cached
        """
        self._cache = cache
        self._queue = queue
        self._reachability = reachability
        self._request_fn = request_fn
        self._cacheable_types = cacheable_types
        self._queue.set_executor(self.execute_queued)

    async def generate(
        self,
        request_type: RequestType,
        partner_id: str,
        message: str,
        params: Optional[Dict[str, Any]] = None,
        partner_name: Optional[str] = None,
    ) -> AIResult:
        """
        Get an AI result, deferring the request when offline.

        Args:
            request_type: Kind of AI request
            partner_id: Conversation partner identifier
            message: Message the request is about
            params: Extra request payload
            partner_name: Partner display name for queue previews

        Returns:
            AI result tagged with its source

        Raises:
            Exception: Backend errors not caused by lost connectivity
        """
        request_type = RequestType(request_type)
        payload = {**(params or {}), "message": message}
        use_cache = request_type in self._cacheable_types

        if use_cache:
            cached = await self._cache.lookup(partner_id, message)
            if cached is not None:
                return AIResult.from_cache(cached)

        if not await self._is_online():
            return await self._defer(request_type, payload, partner_id, partner_name)

        try:
            result = await self._request_fn(request_type, payload)
        except CONNECTIVITY_ERRORS as e:
            logger.warning("Backend unreachable, deferring", error=str(e))
            return await self._defer(request_type, payload, partner_id, partner_name)

        if use_cache:
            await self._store_in_cache(partner_id, message, result)
        return AIResult.from_api(result)

    async def execute_queued(self, request: QueuedRequest) -> bool:
        """
        Replay a deferred request.

        Args:
            request: Queued request

        Returns:
            True if the backend call succeeded
        """
        try:
            result = await self._request_fn(request.type, request.params)
        except Exception as e:
            log_error(e, context="replay_queued_request", request_id=request.id)
            return False

        message = request.params.get("message")
        if (
            request.type in self._cacheable_types
            and request.partner_id
            and isinstance(message, str)
        ):
            await self._store_in_cache(request.partner_id, message, result)
        return True

    async def cached_responses(self, partner_id: str) -> List[Any]:
        """
        Get cached results for a partner.

        Args:
            partner_id: Conversation partner identifier

        Returns:
            Responses, most recently used first
        """
        entries = await self._cache.entries_for_partner(partner_id)
        return [entry.response for entry in entries]

    async def _defer(
        self,
        request_type: RequestType,
        payload: Dict[str, Any],
        partner_id: str,
        partner_name: Optional[str],
    ) -> AIResult:
        request_id = await self._queue.enqueue(
            request_type, payload, partner_id=partner_id, partner_name=partner_name
        )
        return AIResult.queued(request_id)

    async def _store_in_cache(self, partner_id: str, message: str, result: Any) -> None:
        """Cache a result; a failed write never fails the request."""
        try:
            await self._cache.store(partner_id, message, result)
        except CacheError as e:
            log_error(e, context="cache_store", partner_id=partner_id)

    async def _is_online(self) -> bool:
        try:
            return await self._reachability.is_online()
        except Exception as e:
            logger.warning("Reachability check failed", error=str(e))
            return False
