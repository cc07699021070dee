"""
Pytest configuration and fixtures.

Provides common fixtures for testing.
"""

import pytest

from ai_resilience.cache.response_cache import ResponseCache
from ai_resilience.config import AppConfig, OfflineQueueConfig, ResponseCacheConfig
from ai_resilience.network.reachability import ManualReachability
from ai_resilience.queue.offline_queue import OfflineQueue
from ai_resilience.repositories.kv_store import InMemoryKeyValueStore

START_TIME = 1_700_000_000.0


class FakeClock:
    """Controllable time source returning epoch seconds."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def test_config() -> AppConfig:
    """
    Create test configuration.

    Returns:
        Test configuration instance
    """
    return AppConfig(
        app_env="development",
        redis_host="localhost",
        redis_port=6379,
        cache_max_entries=3,
        queue_max_size=3,
        queue_retry_delay_seconds=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Create controllable clock."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Create empty in-memory store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def reachability() -> ManualReachability:
    """Create reachability that starts online."""
    return ManualReachability(online=True)


@pytest.fixture
def cache_config() -> ResponseCacheConfig:
    """Small cache with a 100 second TTL."""
    return ResponseCacheConfig(max_entries=3, ttl_seconds=100)


@pytest.fixture
def response_cache(store, cache_config, clock) -> ResponseCache:
    """Create response cache over the in-memory store."""
    return ResponseCache(store, cache_config, clock=clock)


@pytest.fixture
def queue_config() -> OfflineQueueConfig:
    """Small queue without pauses between requests."""
    return OfflineQueueConfig(max_queue_size=3, max_retries=3, retry_delay_seconds=0)


@pytest.fixture
def offline_queue(store, reachability, queue_config, clock) -> OfflineQueue:
    """Create offline queue over the in-memory store."""
    return OfflineQueue(store, reachability, queue_config, clock=clock)


@pytest.fixture
def sample_message() -> str:
    """
    Sample partner message for testing.

    Returns:
        Sample message text
    """
    return "Hey, what are you up to this weekend?"


@pytest.fixture
def sample_response() -> dict:
    """
    Sample AI response for testing.

    Returns:
        Sample response payload
    """
    return {"text": "Thinking about a hike, want to join?", "tone": "playful"}
