"""
Network reachability observers.

Sandi Metz Principles:
- Single Responsibility: Report connectivity and its transitions
- Small methods: Each check isolated
- Dependency Inversion: Queue depends on the abstraction only
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ai_resilience.utils.logger import get_logger

logger = get_logger(__name__)

ReachabilityListener = Callable[[bool], None]


class ReachabilityObserver(ABC):
    """
    Source of connectivity state and connectivity-changed events.

    Listeners are called with the new state, once per actual transition.
    """

    def __init__(self, initial: Optional[bool] = None):
        self._listeners: List[ReachabilityListener] = []
        self._last_state = initial

    @abstractmethod
    async def is_online(self) -> bool:
        """
        Check current connectivity.

        Returns:
            True if the backend is reachable
        """

    def add_listener(self, listener: ReachabilityListener) -> Callable[[], None]:
        """
        Subscribe to connectivity changes.

        Args:
            listener: Called with the new state on every transition

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, online: bool) -> None:
        """Notify listeners if ``online`` differs from the last known state."""
        if online == self._last_state:
            return
        self._last_state = online
        logger.info("Connectivity changed", online=online)

        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                logger.warning("Reachability listener failed", error=str(e))


class ManualReachability(ReachabilityObserver):
    """
    Reachability driven by the host application.

    Adapter for platform connectivity callbacks: forward every platform
    event to set_online().
    """

    def __init__(self, online: bool = True):
        super().__init__(initial=online)
        self._online = online

    async def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """
        Record a connectivity change.

        Args:
            online: New connectivity state
        """
        self._online = online
        self._emit(online)


class TcpReachabilityProbe(ReachabilityObserver):
    """Reachability measured by opening a TCP connection to a known host."""

    def __init__(self, host: str, port: int, timeout_seconds: float = 3.0):
        """
        Initialize probe.

        Args:
            host: Host to connect to
            port: Port to connect to
            timeout_seconds: Connection timeout
        """
        super().__init__()
        self._host = host
        self._port = port
        self._timeout = timeout_seconds

    async def is_online(self) -> bool:
        return await self.refresh()

    async def refresh(self) -> bool:
        """
        Probe connectivity and notify listeners on a transition.

        Returns:
            True if the probe connected
        """
        online = await self._probe()
        self._emit(online)
        return online

    async def _probe(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port), timeout=self._timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Reachability probe failed", host=self._host, error=str(e))
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Probe connection close failed", error=str(e))
        return True
