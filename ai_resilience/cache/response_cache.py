"""
Response cache service.

Memoizes AI responses per conversation partner, keyed by a hash of the
normalized message. Entries expire after a TTL and the cache is bounded
by LRU eviction.

The backing store only offers point lookups, so a single index record
lists every live entry. Index and entry are written one after the other;
a crash in between can leave an orphaned entry or a stale index record.
Orphans are invisible to stats and eviction until a lookup finds them
expired; stale records are purged by sweep_expired().

Sandi Metz Principles:
- Single Responsibility: Cache bookkeeping
- Small methods: Each operation isolated
- Dependency Injection: Store, config and clock injected
"""

import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from ai_resilience.config import ResponseCacheConfig
from ai_resilience.exceptions import CacheError, StoreError
from ai_resilience.models.cache_entry import (
    CACHE_INDEX_VERSION,
    CacheEntry,
    CacheIndex,
    CacheIndexRecord,
    CacheStats,
)
from ai_resilience.repositories.kv_store import KeyValueStore
from ai_resilience.utils.hasher import generate_entry_id, hash_message
from ai_resilience.utils.logger import get_logger, log_cache_hit, log_cache_miss

logger = get_logger(__name__)


def is_expired(
    entry: Union[CacheEntry, CacheIndexRecord], now: float, ttl_seconds: float
) -> bool:
    """
    Check whether an entry has outlived its TTL.

    Args:
        entry: Cache entry or its index record
        now: Current time (epoch seconds)
        ttl_seconds: Time-to-live in seconds

    Returns:
        True if the entry is stale
    """
    return now - entry.timestamp > ttl_seconds


class ResponseCache:
    """
    Per-partner AI response cache.

    Callers serialize access per key; the cache does no locking of its own.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[ResponseCacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            store: Persistent key-value store
            config: Cache configuration (uses defaults if None)
            clock: Time source returning epoch seconds
        """
        self._store = store
        self._config = config or ResponseCacheConfig()
        self._clock = clock

    @property
    def index_key(self) -> str:
        """Store key of the cache index."""
        return f"{self._config.key_prefix}:index"

    def entry_key(self, entry_id: str) -> str:
        """Store key of a single entry."""
        return f"{self._config.key_prefix}:entry:{entry_id}"

    async def lookup(self, partner_id: str, message: str) -> Optional[Any]:
        """
        Get cached response for a partner/message pair.

        Expired entries are deleted and reported as a miss.

        Args:
            partner_id: Conversation partner identifier
            message: Raw message text

        Returns:
            Cached response if found, None otherwise
        """
        message_hash = hash_message(message)
        entry_id = generate_entry_id(partner_id, message_hash)
        entry = await self._read_entry(entry_id)

        if entry is None:
            log_cache_miss(partner_id, message_hash)
            return None

        now = self._clock()
        if is_expired(entry, now, self._config.ttl_seconds):
            await self._discard([entry_id])
            log_cache_miss(partner_id, message_hash, reason="expired")
            return None

        entry.record_access(now)
        try:
            await self._store.set(self.entry_key(entry_id), entry.model_dump_json())
        except StoreError as e:
            logger.warning("Access bookkeeping not saved", entry_id=entry_id, error=str(e))

        log_cache_hit(partner_id, message_hash, access_count=entry.access_count)
        return entry.response

    async def store(self, partner_id: str, message: str, response: Any) -> None:
        """
        Cache a response, replacing any entry for the same key.

        Args:
            partner_id: Conversation partner identifier
            message: Raw message text
            response: AI response payload (JSON serializable)

        Raises:
            CacheError: If the store rejects the write
        """
        message_hash = hash_message(message)
        entry_id = generate_entry_id(partner_id, message_hash)
        now = self._clock()
        entry = CacheEntry(
            id=entry_id,
            partner_id=partner_id,
            message_hash=message_hash,
            response=response,
            timestamp=now,
            access_count=0,
            last_accessed=now,
        )

        try:
            index = await self._read_index()
            await self._store.set(self.entry_key(entry_id), entry.model_dump_json())
            index.upsert(
                CacheIndexRecord(
                    id=entry_id,
                    partner_id=partner_id,
                    message_hash=message_hash,
                    timestamp=now,
                )
            )
            if len(index.entries) > self._config.max_entries:
                await self._evict_lru(index, keep=entry_id)
            await self._save_index(index)
        except StoreError as e:
            raise CacheError(f"Failed to cache response for {partner_id}") from e

        logger.debug("Cache stored", partner_id=partner_id, size=len(index.entries))

    async def entries_for_partner(self, partner_id: str) -> List[CacheEntry]:
        """
        Get live entries of one partner.

        Args:
            partner_id: Conversation partner identifier

        Returns:
            Entries ordered by most recent access first
        """
        index = await self._load_index()
        now = self._clock()
        entries = []

        for record in index.entries:
            if record.partner_id != partner_id:
                continue
            entry = await self._read_entry(record.id)
            if entry and not is_expired(entry, now, self._config.ttl_seconds):
                entries.append(entry)

        return sorted(entries, key=lambda e: e.last_accessed, reverse=True)

    async def stats(self) -> CacheStats:
        """
        Get cache statistics from the index alone.

        Returns:
            Cache statistics
        """
        index = await self._load_index()
        by_partner: Dict[str, int] = {}
        for record in index.entries:
            by_partner[record.partner_id] = by_partner.get(record.partner_id, 0) + 1

        timestamps = [record.timestamp for record in index.entries]
        return CacheStats(
            total_entries=len(index.entries),
            entries_by_partner=by_partner,
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )

    async def clear_all(self) -> None:
        """
        Remove every entry and reset the index.

        Raises:
            CacheError: If the store rejects the read or delete
        """
        try:
            index = await self._read_index()
            keys = [self.entry_key(record.id) for record in index.entries]
            keys.append(self.index_key)
            await self._store.delete_many(keys)
        except StoreError as e:
            raise CacheError("Failed to clear response cache") from e

        logger.info("Response cache cleared", count=len(index.entries))

    async def clear_for_partner(self, partner_id: str) -> int:
        """
        Remove the entries of one partner.

        Args:
            partner_id: Conversation partner identifier

        Returns:
            Number of entries removed

        Raises:
            CacheError: If the store rejects the read or delete
        """
        try:
            index = await self._read_index()
            doomed = [r.id for r in index.entries if r.partner_id == partner_id]
            if doomed:
                await self._remove(index, doomed)
        except StoreError as e:
            raise CacheError(f"Failed to clear cache for {partner_id}") from e

        if not doomed:
            return 0
        logger.info("Partner cache cleared", partner_id=partner_id, count=len(doomed))
        return len(doomed)

    async def sweep_expired(self) -> int:
        """
        Purge every entry older than the TTL, read or not.

        Returns:
            Number of entries removed

        Raises:
            CacheError: If the store rejects the read or delete
        """
        now = self._clock()
        try:
            index = await self._read_index()
            expired = [
                r.id
                for r in index.entries
                if is_expired(r, now, self._config.ttl_seconds)
            ]
            if expired:
                await self._remove(index, expired)
        except StoreError as e:
            raise CacheError("Failed to sweep expired entries") from e

        if not expired:
            return 0
        logger.info("Expired entries swept", count=len(expired))
        return len(expired)

    async def _evict_lru(self, index: CacheIndex, keep: str) -> None:
        """
        Evict least recently used entries until the index fits.

        Unreadable entries rank as never accessed. Ties keep index order.
        """
        overflow = len(index.entries) - self._config.max_entries
        ranked = []
        for position, record in enumerate(index.entries):
            if record.id == keep:
                continue
            entry = await self._read_entry(record.id)
            last_accessed = entry.last_accessed if entry else 0.0
            ranked.append((last_accessed, position, record.id))

        ranked.sort()
        victims = [entry_id for _, _, entry_id in ranked[:overflow]]
        await self._store.delete_many(self.entry_key(v) for v in victims)
        index.remove(set(victims))
        logger.info("Evicted entries (LRU)", count=len(victims))

    async def _remove(self, index: CacheIndex, entry_ids: List[str]) -> None:
        """Delete entries and their index records."""
        await self._store.delete_many(self.entry_key(e) for e in entry_ids)
        index.remove(set(entry_ids))
        await self._save_index(index)

    async def _discard(self, entry_ids: Iterable[str]) -> None:
        """
        Best-effort removal used on the read path.

        An index that cannot be read is left alone; its stale records are
        dropped by the next sweep.
        """
        entry_ids = list(entry_ids)
        try:
            index = await self._read_index()
        except StoreError as e:
            logger.warning("Cache index unavailable, removing entries only", error=str(e))
            index = None

        try:
            if index is None:
                await self._store.delete_many(self.entry_key(e) for e in entry_ids)
            else:
                await self._remove(index, entry_ids)
        except StoreError as e:
            logger.warning("Stale entry not removed", count=len(entry_ids), error=str(e))

    async def _read_entry(self, entry_id: str) -> Optional[CacheEntry]:
        """Read one entry; unreadable or corrupt entries count as absent."""
        key = self.entry_key(entry_id)
        try:
            raw = await self._store.get(key)
        except StoreError as e:
            logger.warning("Cache read failed", entry_id=entry_id, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Corrupt cache entry", entry_id=entry_id, error=str(e))
            await self._discard([entry_id])
            return None

    async def _load_index(self) -> CacheIndex:
        """Read the index for reporting; an unreadable index counts as empty."""
        try:
            return await self._read_index()
        except StoreError as e:
            logger.warning("Cache index read failed", error=str(e))
            return CacheIndex()

    async def _read_index(self) -> CacheIndex:
        """
        Read the index before rewriting it.

        Corrupt or outdated indexes count as empty and get replaced.

        Raises:
            StoreError: If the index cannot be read
        """
        raw = await self._store.get(self.index_key)

        if raw is None:
            return CacheIndex()

        try:
            index = CacheIndex.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Corrupt cache index", error=str(e))
            return CacheIndex()

        if index.version != CACHE_INDEX_VERSION:
            logger.info("Cache index version changed", found=index.version)
            return CacheIndex()
        return index

    async def _save_index(self, index: CacheIndex) -> None:
        await self._store.set(self.index_key, index.model_dump_json())
