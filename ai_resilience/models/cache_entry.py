"""
Response cache models.

Sandi Metz Principles:
- Single Responsibility: Cache data structure
- Clear naming: Descriptive fields
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

CACHE_INDEX_VERSION = 1


class CacheEntry(BaseModel):
    """Cached AI response for one partner/message pair."""

    id: str = Field(..., description="Entry id derived from partner and hash")
    partner_id: str = Field(..., description="Conversation partner identifier")
    message_hash: str = Field(..., description="Hash of the normalized message")
    response: Any = Field(..., description="Opaque AI response payload")
    timestamp: float = Field(..., ge=0, description="Creation time (epoch seconds)")
    access_count: int = Field(default=0, ge=0, description="Number of cache hits")
    last_accessed: float = Field(..., ge=0, description="Last read (epoch seconds)")

    def record_access(self, now: float) -> None:
        """Update access bookkeeping for a cache hit."""
        self.access_count += 1
        self.last_accessed = now


class CacheIndexRecord(BaseModel):
    """Index record for a live cache entry."""

    id: str
    partner_id: str
    message_hash: str
    timestamp: float


class CacheIndex(BaseModel):
    """Enumerable listing of every live cache entry."""

    entries: List[CacheIndexRecord] = Field(default_factory=list)
    version: int = Field(default=CACHE_INDEX_VERSION)

    def find(self, entry_id: str) -> Optional[int]:
        """Return the position of ``entry_id`` or None."""
        for position, record in enumerate(self.entries):
            if record.id == entry_id:
                return position
        return None

    def upsert(self, record: CacheIndexRecord) -> None:
        """Replace the record with the same id in place, or append it."""
        position = self.find(record.id)
        if position is None:
            self.entries.append(record)
        else:
            self.entries[position] = record

    def remove(self, entry_ids: set) -> None:
        """Drop every record whose id is in ``entry_ids``."""
        self.entries = [e for e in self.entries if e.id not in entry_ids]


class CacheStats(BaseModel):
    """Response cache statistics derived from the index."""

    total_entries: int = Field(..., ge=0)
    entries_by_partner: Dict[str, int] = Field(default_factory=dict)
    oldest_entry: Optional[float] = Field(None, description="Oldest entry timestamp")
    newest_entry: Optional[float] = Field(None, description="Newest entry timestamp")
