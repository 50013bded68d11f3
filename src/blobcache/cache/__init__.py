"""Disk-backed blob cache with frequency-based eviction.

Key components:
- CacheStore: One file per key, LFU-with-tie eviction at capacity
- CacheConfig: Configuration management
- FrequencyIndex: In-memory access counts and statistics
"""

from blobcache.cache.config import CacheConfig
from blobcache.cache.frequency import FrequencyIndex, FrequencyRecord
from blobcache.cache.store import (
    CacheConfigError,
    CacheDirectoryError,
    CacheDiskFullError,
    CacheError,
    CacheLockError,
    CacheReadError,
    CacheStore,
    CacheWriteError,
    InvalidKeyError,
    StoreStats,
)

__all__ = [
    "CacheStore",
    "CacheConfig",
    "FrequencyIndex",
    "FrequencyRecord",
    "StoreStats",
    "CacheError",
    "CacheConfigError",
    "CacheDirectoryError",
    "CacheDiskFullError",
    "CacheLockError",
    "CacheReadError",
    "CacheWriteError",
    "InvalidKeyError",
]
