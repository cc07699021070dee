"""
Key-value store abstraction.

Sandi Metz Principles:
- Single Responsibility: Define the persistence contract
- Dependency Inversion: Cache and queue depend on this abstraction
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional


class KeyValueStore(ABC):
    """
    Durable string key-value store.

    Implementations raise StoreError on I/O failure rather than
    silently dropping data.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Store key

        Returns:
            Stored value, None if absent
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: Store key
            value: Serialized value
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a key if present.

        Args:
            key: Store key
        """

    @abstractmethod
    async def delete_many(self, keys: Iterable[str]) -> None:
        """
        Remove several keys in one call.

        Args:
            keys: Store keys
        """


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and local development."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """List stored keys."""
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)
