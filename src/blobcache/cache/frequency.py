"""Access-frequency bookkeeping for cached blobs."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass
class FrequencyRecord:
    """Access counter for a single cached key.

    Attributes:
        key: Cache key (file name in the cache directory)
        access_count: Number of hits and sets recorded for the key
    """

    key: str
    access_count: int = 1


class FrequencyIndex:
    """In-memory index of access counts, one record per stored blob.

    The index tracks:
    - Per-key access counts used to rank eviction candidates
    - Cache statistics (hits, misses, evicted entries)

    The index is process state only. Nothing is written to disk, so keys
    found on disk after a restart start without a record until they are
    next read or written.

    The index does no locking of its own; CacheStore serializes access.
    """

    def __init__(self):
        """Initialize an empty index."""
        self._records: Dict[str, FrequencyRecord] = {}
        self._stats = {
            "cache_hits": 0,
            "cache_misses": 0,
            "evictions": 0,
        }

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def get_record(self, key: str) -> Optional[FrequencyRecord]:
        """Get the record for a key.

        Args:
            key: Cache key

        Returns:
            FrequencyRecord or None if the key is not tracked
        """
        return self._records.get(key)

    def access_count(self, key: str) -> Optional[int]:
        """Get the access count for a key, or None if untracked."""
        record = self._records.get(key)
        return record.access_count if record is not None else None

    def touch(self, key: str) -> int:
        """Record an access, creating the record on first use.

        Args:
            key: Cache key

        Returns:
            The key's access count after the update
        """
        record = self._records.get(key)
        if record is None:
            record = FrequencyRecord(key=key, access_count=1)
            self._records[key] = record
        else:
            record.access_count += 1
        return record.access_count

    def remove(self, key: str) -> None:
        """Remove a key's record. Untracked keys are ignored."""
        self._records.pop(key, None)

    def clear(self) -> None:
        """Drop every record. Statistics are kept."""
        self._records.clear()

    def least_frequent(self) -> Tuple[Optional[int], List[str]]:
        """Find every key sharing the smallest access count.

        Returns:
            Tuple of (minimum count, keys with that count). The count is None
            and the list empty when the index is empty.
        """
        if not self._records:
            return None, []

        min_count = min(record.access_count for record in self._records.values())
        victims = [
            key
            for key, record in self._records.items()
            if record.access_count == min_count
        ]
        return min_count, victims

    def keys(self) -> List[str]:
        """Get all tracked keys."""
        return list(self._records.keys())

    def get_all_records(self) -> Dict[str, FrequencyRecord]:
        """Get a copy of all records.

        Returns:
            Dict mapping keys to FrequencyRecord copies
        """
        return {
            key: FrequencyRecord(key=record.key, access_count=record.access_count)
            for key, record in self._records.items()
        }

    def record_cache_hit(self) -> None:
        """Record a cache hit in statistics."""
        self._stats["cache_hits"] += 1

    def record_cache_miss(self) -> None:
        """Record a cache miss in statistics."""
        self._stats["cache_misses"] += 1

    def record_evictions(self, count: int) -> None:
        """Record evicted entries in statistics."""
        self._stats["evictions"] += count

    def get_stats(self) -> Dict[str, int]:
        """Get index statistics.

        Returns:
            Statistics dict with hits, misses, evictions and tracked keys
        """
        stats = dict(self._stats)
        stats["tracked_keys"] = len(self._records)
        return stats
