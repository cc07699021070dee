"""Test response cache."""

from unittest.mock import AsyncMock

import pytest

from ai_resilience.cache.response_cache import ResponseCache, is_expired
from ai_resilience.config import ResponseCacheConfig
from ai_resilience.exceptions import CacheError, StoreError
from ai_resilience.models.cache_entry import CacheEntry
from ai_resilience.utils.hasher import generate_entry_id, hash_message


def entry_id(partner_id: str, message: str) -> str:
    return generate_entry_id(partner_id, hash_message(message))


def fail_index_read_once(store, index_key: str) -> None:
    """Make the next read of the index raise StoreError."""
    real_get = store.get
    pending = [True]

    async def get(key):
        if key == index_key and pending:
            pending.pop()
            raise StoreError("timeout")
        return await real_get(key)

    store.get = get


class TestIsExpired:
    """Test TTL predicate."""

    def _entry(self, timestamp: float) -> CacheEntry:
        return CacheEntry(
            id="p1:abc",
            partner_id="p1",
            message_hash="abc",
            response={"text": "hi"},
            timestamp=timestamp,
            last_accessed=timestamp,
        )

    def test_should_not_expire_at_ttl_boundary(self):
        """Test entry exactly TTL old is still fresh."""
        assert is_expired(self._entry(1000.0), now=1100.0, ttl_seconds=100) is False

    def test_should_expire_after_ttl(self):
        """Test entry older than TTL is stale."""
        assert is_expired(self._entry(1000.0), now=1100.5, ttl_seconds=100) is True


class TestLookupAndStore:
    """Test read and write paths."""

    @pytest.mark.asyncio
    async def test_should_return_none_on_miss(self, response_cache):
        """Test lookup of unknown message."""
        assert await response_cache.lookup("p1", "anything") is None

    @pytest.mark.asyncio
    async def test_should_hit_for_normalized_variants(self, response_cache):
        """Test case and whitespace variants share one entry."""
        await response_cache.store("p1", "Hello", {"text": "R"})

        assert await response_cache.lookup("p1", "Hello") == {"text": "R"}
        assert await response_cache.lookup("p1", "  hello  ") == {"text": "R"}

    @pytest.mark.asyncio
    async def test_should_scope_entries_to_partner(self, response_cache):
        """Test same message for another partner is a miss."""
        await response_cache.store("p1", "hey", {"text": "hi"})

        assert await response_cache.lookup("p2", "hey") is None

    @pytest.mark.asyncio
    async def test_should_count_access_on_hit(self, response_cache):
        """Test hit increments access count from zero."""
        await response_cache.store("p1", "hey", {"text": "hi"})

        result = await response_cache.lookup("p1", "HEY")

        assert result == {"text": "hi"}
        entries = await response_cache.entries_for_partner("p1")
        assert entries[0].access_count == 1

    @pytest.mark.asyncio
    async def test_should_update_existing_entry_in_place(self, response_cache):
        """Test rewrite replaces response and resets bookkeeping."""
        await response_cache.store("p1", "hey", {"text": "first"})
        await response_cache.lookup("p1", "hey")

        await response_cache.store("p1", "Hey ", {"text": "second"})

        stats = await response_cache.stats()
        entries = await response_cache.entries_for_partner("p1")
        assert stats.total_entries == 1
        assert entries[0].response == {"text": "second"}
        assert entries[0].access_count == 0

    @pytest.mark.asyncio
    async def test_should_keep_response_when_bookkeeping_write_fails(
        self, response_cache, store
    ):
        """Test hit survives a failed access-count write."""
        await response_cache.store("p1", "hey", {"text": "hi"})
        store.set = AsyncMock(side_effect=StoreError("disk full"))

        assert await response_cache.lookup("p1", "hey") == {"text": "hi"}

    @pytest.mark.asyncio
    async def test_should_raise_cache_error_when_write_fails(
        self, response_cache, store
    ):
        """Test store surfaces persistence failure."""
        store.set = AsyncMock(side_effect=StoreError("disk full"))

        with pytest.raises(CacheError):
            await response_cache.store("p1", "hey", {"text": "hi"})

    @pytest.mark.asyncio
    async def test_should_miss_when_read_fails(self, response_cache, store):
        """Test read failure degrades to miss."""
        await response_cache.store("p1", "hey", {"text": "hi"})
        store.get = AsyncMock(side_effect=StoreError("io"))

        assert await response_cache.lookup("p1", "hey") is None


class TestExpiry:
    """Test TTL handling."""

    @pytest.mark.asyncio
    async def test_should_hit_before_ttl_and_purge_after(self, response_cache, clock):
        """Test lazy expiry on lookup."""
        await response_cache.store("p1", "hey", {"text": "hi"})

        clock.advance(99)
        assert await response_cache.lookup("p1", "hey") == {"text": "hi"}

        clock.advance(2)
        assert await response_cache.lookup("p1", "hey") is None

        stats = await response_cache.stats()
        assert stats.total_entries == 0

    @pytest.mark.asyncio
    async def test_should_sweep_only_expired_entries(self, response_cache, clock):
        """Test sweep removes stale entries and keeps fresh ones."""
        await response_cache.store("p1", "old", {"text": "a"})
        clock.advance(50)
        await response_cache.store("p1", "new", {"text": "b"})
        clock.advance(60)

        removed = await response_cache.sweep_expired()

        assert removed == 1
        assert await response_cache.lookup("p1", "old") is None
        assert await response_cache.lookup("p1", "new") == {"text": "b"}

    @pytest.mark.asyncio
    async def test_should_sweep_recently_read_entries(self, response_cache, clock):
        """Test expiry is based on creation time, not last access."""
        await response_cache.store("p1", "hey", {"text": "hi"})
        clock.advance(90)
        await response_cache.lookup("p1", "hey")
        clock.advance(20)

        assert await response_cache.sweep_expired() == 1

    @pytest.mark.asyncio
    async def test_should_return_zero_when_nothing_expired(self, response_cache):
        """Test sweep on fresh cache."""
        await response_cache.store("p1", "hey", {"text": "hi"})

        assert await response_cache.sweep_expired() == 0


class TestEviction:
    """Test LRU bound."""

    @pytest.mark.asyncio
    async def test_should_evict_least_recently_used(self, response_cache, clock):
        """Test inserting past capacity evicts the untouched first key."""
        for i in range(4):
            await response_cache.store("p1", f"message {i}", {"n": i})
            clock.advance(1)

        stats = await response_cache.stats()
        assert stats.total_entries == 3
        assert await response_cache.lookup("p1", "message 0") is None
        for i in range(1, 4):
            assert await response_cache.lookup("p1", f"message {i}") == {"n": i}

    @pytest.mark.asyncio
    async def test_should_spare_recently_read_entries(self, response_cache, clock):
        """Test a read protects an old entry from eviction."""
        for i in range(3):
            await response_cache.store("p1", f"message {i}", {"n": i})
            clock.advance(1)
        await response_cache.lookup("p1", "message 0")
        clock.advance(1)

        await response_cache.store("p1", "message 3", {"n": 3})

        assert await response_cache.lookup("p1", "message 0") == {"n": 0}
        assert await response_cache.lookup("p1", "message 1") is None

    @pytest.mark.asyncio
    async def test_should_never_evict_entry_just_written(self, store, clock):
        """Test new entry survives eviction when access times tie."""
        cache = ResponseCache(
            store, ResponseCacheConfig(max_entries=1, ttl_seconds=100), clock=clock
        )
        await cache.store("p1", "first", {"n": 1})
        await cache.store("p1", "second", {"n": 2})

        assert await cache.lookup("p1", "second") == {"n": 2}
        assert await cache.lookup("p1", "first") is None

    @pytest.mark.asyncio
    async def test_should_remove_evicted_entry_from_store(
        self, response_cache, store, clock
    ):
        """Test eviction deletes the entry record too."""
        for i in range(4):
            await response_cache.store("p1", f"message {i}", {"n": i})
            clock.advance(1)

        key = response_cache.entry_key(entry_id("p1", "message 0"))
        assert await store.get(key) is None


class TestStatsAndClearing:
    """Test index-derived operations."""

    @pytest.mark.asyncio
    async def test_should_report_entries_by_partner(self, response_cache, clock):
        """Test stats groups entries by partner."""
        await response_cache.store("p1", "a", {"n": 1})
        clock.advance(5)
        await response_cache.store("p1", "b", {"n": 2})
        await response_cache.store("p2", "a", {"n": 3})

        stats = await response_cache.stats()

        assert stats.total_entries == 3
        assert stats.entries_by_partner == {"p1": 2, "p2": 1}
        assert stats.oldest_entry == clock.now - 5
        assert stats.newest_entry == clock.now

    @pytest.mark.asyncio
    async def test_should_report_empty_stats(self, response_cache):
        """Test stats of an empty cache."""
        stats = await response_cache.stats()

        assert stats.total_entries == 0
        assert stats.entries_by_partner == {}
        assert stats.oldest_entry is None

    @pytest.mark.asyncio
    async def test_should_clear_everything(self, response_cache, store):
        """Test clear_all removes entries and index."""
        await response_cache.store("p1", "a", {"n": 1})
        await response_cache.store("p2", "b", {"n": 2})

        await response_cache.clear_all()

        assert len(store) == 0
        assert (await response_cache.stats()).total_entries == 0

    @pytest.mark.asyncio
    async def test_should_clear_one_partner(self, response_cache):
        """Test clear_for_partner leaves other partners alone."""
        await response_cache.store("p1", "a", {"n": 1})
        await response_cache.store("p1", "b", {"n": 2})
        await response_cache.store("p2", "a", {"n": 3})

        removed = await response_cache.clear_for_partner("p1")

        assert removed == 2
        assert await response_cache.lookup("p1", "a") is None
        assert await response_cache.lookup("p2", "a") == {"n": 3}
        assert (await response_cache.stats()).entries_by_partner == {"p2": 1}

    @pytest.mark.asyncio
    async def test_should_return_zero_for_unknown_partner(self, response_cache):
        """Test clearing a partner without entries."""
        assert await response_cache.clear_for_partner("nobody") == 0

    @pytest.mark.asyncio
    async def test_should_list_partner_entries_by_recent_access(
        self, response_cache, clock
    ):
        """Test entries_for_partner ordering."""
        await response_cache.store("p1", "a", {"n": 1})
        clock.advance(1)
        await response_cache.store("p1", "b", {"n": 2})
        clock.advance(1)
        await response_cache.lookup("p1", "a")

        entries = await response_cache.entries_for_partner("p1")

        assert [e.response for e in entries] == [{"n": 1}, {"n": 2}]


class TestCorruption:
    """Test self-healing of bad records."""

    @pytest.mark.asyncio
    async def test_should_treat_corrupt_entry_as_miss(self, response_cache, store):
        """Test unparsable entry is deleted and reported as a miss."""
        await response_cache.store("p1", "hey", {"text": "hi"})
        key = response_cache.entry_key(entry_id("p1", "hey"))
        await store.set(key, "{not json")

        assert await response_cache.lookup("p1", "hey") is None
        assert await store.get(key) is None
        assert (await response_cache.stats()).total_entries == 0

    @pytest.mark.asyncio
    async def test_should_treat_corrupt_index_as_empty(self, response_cache, store):
        """Test unparsable index yields empty stats."""
        await store.set(response_cache.index_key, "[[[")

        stats = await response_cache.stats()

        assert stats.total_entries == 0

    @pytest.mark.asyncio
    async def test_should_ignore_index_of_other_version(self, response_cache, store):
        """Test index written by another format version is discarded."""
        await store.set(response_cache.index_key, '{"entries": [], "version": 99}')
        await response_cache.store("p1", "hey", {"text": "hi"})

        stats = await response_cache.stats()

        assert stats.total_entries == 1


class TestIndexReadFailure:
    """Test a transient index read failure never overwrites the index."""

    @pytest.mark.asyncio
    async def test_should_raise_and_keep_index_when_store_cannot_read_it(
        self, response_cache, store
    ):
        """Test store refuses to write over an index it could not read."""
        await response_cache.store("p1", "a", {"n": 1})
        await response_cache.store("p1", "b", {"n": 2})
        fail_index_read_once(store, response_cache.index_key)

        with pytest.raises(CacheError):
            await response_cache.store("p1", "new", {"n": 3})

        stats = await response_cache.stats()
        assert stats.total_entries == 2
        assert await store.get(response_cache.entry_key(entry_id("p1", "new"))) is None

    @pytest.mark.asyncio
    async def test_should_keep_index_when_expired_lookup_cannot_read_it(
        self, response_cache, store, clock
    ):
        """Test lazy expiry removes only the entry when the index is unreadable."""
        await response_cache.store("p1", "old", {"n": 0})
        clock.advance(60)
        await response_cache.store("p1", "a", {"n": 1})
        await response_cache.store("p1", "b", {"n": 2})
        clock.advance(50)
        fail_index_read_once(store, response_cache.index_key)

        assert await response_cache.lookup("p1", "old") is None

        assert await store.get(response_cache.entry_key(entry_id("p1", "old"))) is None
        assert (await response_cache.stats()).total_entries == 3
        assert await response_cache.lookup("p1", "a") == {"n": 1}
        assert await response_cache.sweep_expired() == 1
        assert (await response_cache.stats()).total_entries == 2

    @pytest.mark.asyncio
    async def test_should_keep_index_when_corrupt_entry_cleanup_cannot_read_it(
        self, response_cache, store
    ):
        """Test corrupt entry cleanup leaves other index records alone."""
        await response_cache.store("p1", "a", {"n": 1})
        await response_cache.store("p1", "b", {"n": 2})
        await store.set(response_cache.entry_key(entry_id("p1", "a")), "{not json")
        fail_index_read_once(store, response_cache.index_key)

        assert await response_cache.lookup("p1", "a") is None

        assert await response_cache.lookup("p1", "b") == {"n": 2}
        assert (await response_cache.stats()).entries_by_partner == {"p1": 2}

    @pytest.mark.asyncio
    async def test_should_raise_when_clear_all_cannot_read_index(
        self, response_cache, store
    ):
        """Test clear_all keeps entries reachable when the index is unreadable."""
        await response_cache.store("p1", "a", {"n": 1})
        fail_index_read_once(store, response_cache.index_key)

        with pytest.raises(CacheError):
            await response_cache.clear_all()

        assert (await response_cache.stats()).total_entries == 1

    @pytest.mark.asyncio
    async def test_should_raise_when_sweep_cannot_read_index(
        self, response_cache, store
    ):
        """Test sweep surfaces an unreadable index instead of reporting zero."""
        fail_index_read_once(store, response_cache.index_key)

        with pytest.raises(CacheError):
            await response_cache.sweep_expired()

    @pytest.mark.asyncio
    async def test_should_report_empty_stats_when_index_unreadable(
        self, response_cache, store
    ):
        """Test pure reads still degrade to an empty index."""
        await response_cache.store("p1", "a", {"n": 1})
        fail_index_read_once(store, response_cache.index_key)

        assert (await response_cache.stats()).total_entries == 0
        assert (await response_cache.stats()).total_entries == 1
