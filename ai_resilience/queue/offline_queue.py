"""
Offline request queue.

Durably defers AI requests made while the backend is unreachable and
replays them once connectivity returns. Draining is single-flight,
pauses between requests and gives up on a request after a bounded
number of attempts. A failing request yields its place to the ones
behind it.

Sandi Metz Principles:
- Single Responsibility: Deferred request lifecycle
- Dependency Injection: Store, reachability, executor and clock injected
"""

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from uuid import uuid4

from pydantic import ValidationError

from ai_resilience.config import OfflineQueueConfig
from ai_resilience.exceptions import QueueError, StoreError
from ai_resilience.models.queue import (
    DrainResult,
    QueuedRequest,
    QueueState,
    QueueStats,
    RequestType,
)
from ai_resilience.network.reachability import ReachabilityObserver
from ai_resilience.queue.preview import create_preview
from ai_resilience.repositories.kv_store import KeyValueStore
from ai_resilience.utils.logger import get_logger, log_error, log_queue_event

logger = get_logger(__name__)

Executor = Callable[[QueuedRequest], Awaitable[bool]]
QueueListener = Callable[[QueueState], None]


class OfflineQueue:
    """
    Persistent FIFO queue of deferred AI requests.

    One instance per process; mutating calls are awaited one at a time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        reachability: ReachabilityObserver,
        config: Optional[OfflineQueueConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize queue.

        Args:
            store: Persistent key-value store
            reachability: Connectivity source
            config: Queue configuration (uses defaults if None)
            clock: Time source returning epoch seconds
        """
        self._store = store
        self._reachability = reachability
        self._config = config or OfflineQueueConfig()
        self._clock = clock

        self._queue: List[QueuedRequest] = []
        self._is_processing = False
        self._last_processed: Optional[float] = None

        self._listeners: List[QueueListener] = []
        self._executor: Optional[Executor] = None
        self._unsubscribe_reachability: Optional[Callable[[], None]] = None
        self._tasks: Set[asyncio.Task] = set()

    # Lifecycle

    async def initialize(self) -> None:
        """Load persisted requests, watch connectivity and drain if online."""
        await self._load()
        self.start_monitoring()

        if self._queue and await self._check_online():
            self._schedule_drain()

    async def shutdown(self) -> None:
        """Stop watching connectivity, cancel background drains, drop listeners."""
        self.stop_monitoring()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._listeners.clear()

    def start_monitoring(self) -> None:
        """Drain whenever connectivity is regained."""
        if self._unsubscribe_reachability:
            return
        self._unsubscribe_reachability = self._reachability.add_listener(
            self._on_connectivity_change
        )
        logger.info("Network monitoring started")

    def stop_monitoring(self) -> None:
        """Stop reacting to connectivity changes."""
        if self._unsubscribe_reachability:
            self._unsubscribe_reachability()
            self._unsubscribe_reachability = None
            logger.info("Network monitoring stopped")

    async def wait_idle(self) -> None:
        """Wait until background drains have finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Queue operations

    async def enqueue(
        self,
        request_type: RequestType,
        params: Dict[str, Any],
        partner_id: Optional[str] = None,
        partner_name: Optional[str] = None,
    ) -> str:
        """
        Defer a request, evicting the oldest one when full.

        Args:
            request_type: Kind of AI request
            params: Opaque request payload
            partner_id: Conversation partner identifier
            partner_name: Partner display name

        Returns:
            Id of the queued request

        Raises:
            QueueError: If the queue cannot be persisted
        """
        request_type = RequestType(request_type)
        request = QueuedRequest(
            id=uuid4().hex,
            type=request_type,
            params=dict(params),
            timestamp=self._clock(),
            retry_count=0,
            partner_id=partner_id,
            partner_name=partner_name,
            preview=create_preview(request_type, params),
        )

        updated = list(self._queue)
        while len(updated) >= self._config.max_queue_size:
            evicted = updated.pop(0)
            log_queue_event("evicted", evicted.id, reason="queue_full")
        updated.append(request)

        await self._commit(updated, action="enqueue")
        log_queue_event(
            "enqueued", request.id, type=request_type.value, queue_size=len(self._queue)
        )
        return request.id

    async def dequeue_by_id(self, request_id: str) -> bool:
        """
        Remove a request wherever it sits in the queue.

        Args:
            request_id: Queued request identifier

        Returns:
            True if the request was queued

        Raises:
            QueueError: If the queue cannot be persisted
        """
        updated = [r for r in self._queue if r.id != request_id]
        if len(updated) == len(self._queue):
            return False

        await self._commit(updated, action="dequeue")
        log_queue_event("removed", request_id)
        return True

    async def clear(self) -> None:
        """
        Remove every queued request.

        Raises:
            QueueError: If the queue cannot be persisted
        """
        await self._commit([], action="clear")
        logger.info("Offline queue cleared")

    def requests(self) -> List[QueuedRequest]:
        """Get a copy of the queued requests in order."""
        return [r.model_copy() for r in self._queue]

    def pending_count(self) -> int:
        """Get number of queued requests."""
        return len(self._queue)

    def stats(self) -> QueueStats:
        """
        Get queue statistics.

        Returns:
            Pending count, oldest enqueue time and counts per type
        """
        counts: Dict[str, int] = {}
        for request in self._queue:
            counts[request.type.value] = counts.get(request.type.value, 0) + 1

        return QueueStats(
            pending=len(self._queue),
            oldest_timestamp=min((r.timestamp for r in self._queue), default=None),
            counts_by_type=counts,
        )

    @property
    def state(self) -> QueueState:
        """Snapshot of the queue."""
        return QueueState(
            requests=tuple(r.model_copy() for r in self._queue),
            is_processing=self._is_processing,
            last_processed=self._last_processed,
        )

    # Processing

    def set_executor(self, executor: Executor) -> None:
        """
        Set the function that performs a queued request.

        Args:
            executor: Returns True on success, False on retryable failure
        """
        self._executor = executor

    async def drain(self) -> DrainResult:
        """
        Replay queued requests while online.

        Returns immediately with zero counts if a drain is already
        running, the queue is empty, no executor is set or the device
        is offline.

        Returns:
            Processed and permanently failed counts
        """
        if self._is_processing or not self._queue:
            return DrainResult()
        if self._executor is None:
            logger.warning("No executor set, skipping drain")
            return DrainResult()

        self._is_processing = True
        try:
            if not await self._check_online():
                logger.info("Still offline, skipping drain")
                self._is_processing = False
                return DrainResult()
            self._notify()
            result = await self._drain_loop()
        finally:
            if self._is_processing:
                self._is_processing = False
                self._last_processed = self._clock()
                self._notify()

        logger.info(
            "Drain complete",
            processed=result.processed,
            failed=result.failed,
            remaining=len(self._queue),
        )
        return result

    async def _drain_loop(self) -> DrainResult:
        result = DrainResult()

        while self._queue:
            request = self._queue[0]
            success = await self._execute(request)

            if success:
                self._take(request)
                result.processed += 1
                log_queue_event("completed", request.id)
            elif self._take(request):
                request.retry_count += 1
                if request.retry_count >= self._config.max_retries:
                    result.failed += 1
                    log_queue_event("dropped", request.id, attempts=request.retry_count)
                else:
                    self._queue.append(request)
                    log_queue_event(
                        "retry_scheduled",
                        request.id,
                        attempt=request.retry_count,
                        max_retries=self._config.max_retries,
                    )

            await self._persist_quietly()
            self._notify()

            if self._queue:
                await asyncio.sleep(self._config.retry_delay_seconds)

            if not await self._check_online():
                logger.info("Went offline during drain", remaining=len(self._queue))
                break

        return result

    async def _execute(self, request: QueuedRequest) -> bool:
        try:
            return bool(await self._executor(request))
        except Exception as e:
            log_error(e, context="queued_request", request_id=request.id)
            return False

    def _take(self, request: QueuedRequest) -> bool:
        """Remove ``request`` by identity; False if it was already removed."""
        for position, queued in enumerate(self._queue):
            if queued is request:
                del self._queue[position]
                return True
        return False

    async def _check_online(self) -> bool:
        try:
            return await self._reachability.is_online()
        except Exception as e:
            logger.warning("Reachability check failed", error=str(e))
            return False

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Network restored, draining queue", pending=len(self._queue))
            self._schedule_drain()

    def _schedule_drain(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, drain not scheduled")
            return

        task = loop.create_task(self.drain())
        self._tasks.add(task)
        task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception():
            log_error(task.exception(), context="background_drain")

    # Subscription

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        """
        Observe queue state.

        Args:
            listener: Called with the current state now and on every change

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)
        self._call(listener, self.state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            self._call(listener, state)

    @staticmethod
    def _call(listener: QueueListener, state: QueueState) -> None:
        try:
            listener(state)
        except Exception as e:
            logger.warning("Queue listener failed", error=str(e))

    # Persistence

    async def _commit(self, updated: List[QueuedRequest], action: str) -> None:
        """Persist ``updated`` and only then make it the live queue."""
        try:
            await self._store.set(self._config.storage_key, self._serialize(updated))
        except StoreError as e:
            raise QueueError(f"Failed to persist queue on {action}") from e

        self._queue = updated
        self._notify()

    async def _persist_quietly(self) -> None:
        try:
            await self._store.set(
                self._config.storage_key, self._serialize(self._queue)
            )
        except StoreError as e:
            logger.warning("Queue progress not persisted", error=str(e))

    async def _load(self) -> None:
        try:
            raw = await self._store.get(self._config.storage_key)
        except StoreError as e:
            logger.warning("Failed to load queue", error=str(e))
            return

        if raw is None:
            return

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt queue payload", error=str(e))
            records = None
        corrupt = not isinstance(records, list)
        if corrupt:
            records = []

        loaded = []
        for record in records:
            try:
                loaded.append(QueuedRequest.model_validate(record))
            except ValidationError as e:
                logger.debug("Malformed queued request", error=str(e))

        discarded = len(records) - len(loaded)
        self._queue = loaded
        logger.info("Queue loaded", pending=len(loaded), discarded=discarded)

        if corrupt or discarded:
            await self._persist_quietly()
        self._notify()

    @staticmethod
    def _serialize(queue: List[QueuedRequest]) -> str:
        return json.dumps([r.model_dump(mode="json") for r in queue])
