"""Disk-backed blob store with frequency-based eviction."""

import errno
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from filelock import FileLock, Timeout
from typing_extensions import TypedDict

from blobcache.cache.config import CacheConfig
from blobcache.cache.frequency import FrequencyIndex
from blobcache.utils import (
    LOCK_FILENAME,
    TEMP_SUFFIX,
    has_recognized_extension,
    validate_key,
)

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class CacheConfigError(CacheError, ValueError):
    """Raised when the store is constructed with an invalid configuration."""

    pass


class InvalidKeyError(CacheError, ValueError):
    """Raised when a key cannot be used as a cache file name."""

    pass


class CacheDirectoryError(CacheError):
    """Raised when the cache directory cannot be listed or locked."""

    pass


class CacheReadError(CacheError):
    """Raised when an existing cache file cannot be read."""

    pass


class CacheWriteError(CacheError):
    """Raised when a cache file cannot be written."""

    pass


class CacheDiskFullError(CacheWriteError):
    """Raised when disk is full and cannot write to cache."""

    pass


class CacheLockError(CacheError):
    """Raised when unable to acquire the store lock."""

    pass


class StoreStats(TypedDict):
    """Snapshot of store state returned by CacheStore.get_stats()."""

    cache_dir: str
    capacity: int
    entry_count: int
    total_disk_size: float
    tracked_keys: int
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    evictions: int


BlobData = Union[bytes, bytearray, memoryview]


class CacheStore:
    """Stores binary blobs as one file per key in a cache directory.

    Every stored key carries an in-memory access count. When a set() finds
    that one more entry would exceed capacity, every key sharing the lowest
    count is evicted in one pass, unless all tracked keys share it.

    All index mutations and the file operations they pair with run under a
    single store-wide file lock, so threads and processes sharing a cache
    directory are serialized.

    Examples:
        >>> store = CacheStore(CacheConfig(cache_dir=tmp_dir, capacity=2))
        >>> store.set("cat.png", b"...")
        >>> store.get("cat.png")
        b'...'
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        capacity: Optional[int] = None,
    ):
        """Initialize the store and create its directory.

        Args:
            config: Cache configuration (defaults if None)
            capacity: Override the configured capacity

        Raises:
            CacheConfigError: If capacity is not a positive integer
        """
        self.config = config or CacheConfig()
        self.capacity = capacity if capacity is not None else self.config.capacity

        if (
            not isinstance(self.capacity, int)
            or isinstance(self.capacity, bool)
            or self.capacity <= 0
        ):
            raise CacheConfigError(
                f"Cache capacity must be a positive integer, got {self.capacity!r}"
            )

        self.cache_dir = Path(self.config.cache_dir)
        self.recognized_extensions = self.config.recognized_extensions
        self.index = FrequencyIndex()

        # A missing directory is not fatal: reads miss and writes fail later
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Problem creating cache directory {self.cache_dir}: {e}")

        self.lock_path = self.cache_dir / LOCK_FILENAME
        self._lock = FileLock(str(self.lock_path), timeout=self.config.lock_timeout)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the store lock for the duration of the block.

        Raises:
            CacheLockError: If the lock is not acquired within lock_timeout
            CacheDirectoryError: If the lock file cannot be created
        """
        try:
            self._lock.acquire()
        except Timeout as e:
            raise CacheLockError(
                f"Timeout acquiring cache lock {self.lock_path} "
                f"after {self.config.lock_timeout} seconds"
            ) from e
        except OSError as e:
            raise CacheDirectoryError(
                f"Cannot lock cache directory {self.cache_dir}: {e}"
            ) from e

        try:
            yield
        finally:
            self._lock.release()

    def _blob_path(self, key: str) -> Path:
        """Get the file path for a key.

        Raises:
            InvalidKeyError: If key is not a valid file name
        """
        try:
            validate_key(key)
        except ValueError as e:
            raise InvalidKeyError(str(e)) from e
        return self.cache_dir / key

    def _list_files(self) -> List[Path]:
        """List files in the cache directory, excluding the lock file.

        A missing directory is treated as empty.

        Raises:
            CacheDirectoryError: If the directory exists but cannot be listed
        """
        try:
            return [
                path
                for path in self.cache_dir.iterdir()
                if path.name != LOCK_FILENAME and path.is_file()
            ]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise CacheDirectoryError(
                f"Cannot list cache directory {self.cache_dir}: {e}"
            ) from e

    def _list_blobs(self) -> List[Path]:
        """List blob files, skipping in-flight temp files."""
        return [
            path for path in self._list_files() if not path.name.endswith(TEMP_SUFFIX)
        ]

    def _count_entries(self) -> int:
        return sum(
            1
            for path in self._list_blobs()
            if has_recognized_extension(path.name, self.recognized_extensions)
        )

    def _disk_bytes(self) -> int:
        size = 0
        for path in self._list_blobs():
            try:
                size += path.stat().st_size
            except FileNotFoundError:
                continue
        return size

    def get(self, key: str) -> Optional[bytes]:
        """Read a cached blob and record a hit.

        Args:
            key: Cache key

        Returns:
            The stored bytes, or None if the key is not cached (or the cache
            directory is unavailable)

        Raises:
            InvalidKeyError: If key is not a valid file name
            CacheReadError: If the file exists but cannot be read
            CacheLockError: If unable to acquire the store lock
        """
        path = self._blob_path(key)

        try:
            with self._locked():
                return self._get_locked(key, path)
        except CacheDirectoryError as e:
            logger.warning(f"Cache directory unavailable, treating {key} as a miss: {e}")
            return None

    def _get_locked(self, key: str, path: Path) -> Optional[bytes]:
        """Get cached blob with lock already acquired."""
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            self.index.record_cache_miss()
            logger.debug(f"Cache miss for {key}")
            return None
        except OSError as e:
            raise CacheReadError(f"Cannot read cache file {path}: {e}") from e

        # Files left by an earlier process get their first record here
        count = self.index.touch(key)
        self.index.record_cache_hit()
        logger.debug(f"Cache hit for {key} (access_count={count})")
        return data

    def set(self, key: str, data: BlobData) -> None:
        """Write a blob, evicting least-frequently-used entries if needed.

        The eviction pass runs first whenever entry_count() + 1 would exceed
        capacity, including when key is already stored. An overwrite adds no
        entry of its own, but the key may be among the evicted victims, in
        which case it is written back with a fresh record.

        Args:
            key: Cache key
            data: Bytes to store

        Raises:
            InvalidKeyError: If key is not a valid file name
            TypeError: If data is not bytes-like
            CacheWriteError: If the file cannot be written (index unchanged)
            CacheDirectoryError: If the cache directory is unavailable
            CacheLockError: If unable to acquire the store lock
        """
        path = self._blob_path(key)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"Cache data must be bytes-like, got {type(data).__name__}"
            )

        with self._locked():
            self._set_locked(key, path, bytes(data))

    def _set_locked(self, key: str, path: Path, data: bytes) -> None:
        """Set cached blob with lock already acquired."""
        if self._count_entries() + 1 > self.capacity:
            self._evict_least_frequent()

        # Write to temp file first (atomic write)
        temp_path = path.with_name(path.name + TEMP_SUFFIX)
        try:
            with open(temp_path, "wb") as f:
                f.write(data)
            os.replace(temp_path, path)
        except OSError as e:
            self._discard_temp(temp_path)
            if e.errno == errno.ENOSPC:
                raise CacheDiskFullError(
                    f"Disk full while writing {key} to cache"
                ) from e
            logger.error(f"OS error writing cache file {path}: {e}")
            raise CacheWriteError(f"Cannot write cache file {path}: {e}") from e

        # Only a successfully written file gets a record
        count = self.index.touch(key)
        logger.debug(f"Cached {key} ({len(data)} bytes, access_count={count})")

    @staticmethod
    def _discard_temp(temp_path: Path) -> None:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up temp file {temp_path}: {e}")

    def _evict_least_frequent(self) -> List[str]:
        """Evict every key sharing the lowest access count.

        Must be called with the store lock held.

        Returns:
            Keys that were evicted
        """
        min_count, victims = self.index.least_frequent()
        if not victims:
            return []

        # No signal to rank entries by, keep everything
        if len(victims) == len(self.index):
            logger.debug(
                f"All {len(victims)} tracked entries have access count "
                f"{min_count}, skipping eviction"
            )
            return []

        for key in victims:
            self._remove_blob(self.cache_dir / key)
            self.index.remove(key)

        self.index.record_evictions(len(victims))
        logger.info(
            f"Evicted {len(victims)} entries with access count {min_count} "
            f"from {self.cache_dir}"
        )
        return victims

    @staticmethod
    def _remove_blob(path: Path) -> bool:
        """Delete a blob file, tolerating failures.

        Returns:
            True if a file was removed
        """
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to remove cache file {path}: {e}")
            return False

    def evict_all(self) -> int:
        """Remove every cached blob and clear the frequency index.

        Returns:
            Number of files removed

        Raises:
            CacheDirectoryError: If the cache directory cannot be listed
            CacheLockError: If unable to acquire the store lock
        """
        with self._locked():
            removed = sum(1 for path in self._list_files() if self._remove_blob(path))
            self.index.clear()

        logger.info(f"Cleared {removed} files from {self.cache_dir}")
        return removed

    def total_disk_size(self) -> float:
        """Calculate the size of every blob in the cache directory.

        Returns:
            Total size divided by config.size_unit (kilobytes by default)

        Raises:
            CacheDirectoryError: If the cache directory cannot be listed
        """
        with self._locked():
            size = self._disk_bytes()
        return size / self.config.size_unit

    def entry_count(self) -> int:
        """Count blobs with a recognized extension.

        Files with other extensions can live in the directory without
        counting towards capacity.

        Returns:
            Number of counted entries
        """
        with self._locked():
            return self._count_entries()

    def contains(self, key: str) -> bool:
        """Check if a blob exists for key without recording an access."""
        return self._blob_path(key).is_file()

    def access_count(self, key: str) -> Optional[int]:
        """Get the recorded access count for key, or None if untracked."""
        with self._locked():
            return self.index.access_count(key)

    def get_stats(self) -> StoreStats:
        """Get cache statistics.

        Returns:
            Statistics dict
        """
        with self._locked():
            index_stats = self.index.get_stats()
            entry_count = self._count_entries()
            size = self._disk_bytes()

        # Calculate hit rate
        total_requests = index_stats["cache_hits"] + index_stats["cache_misses"]
        hit_rate = (
            index_stats["cache_hits"] / total_requests if total_requests > 0 else 0.0
        )

        return StoreStats(
            cache_dir=str(self.cache_dir),
            capacity=self.capacity,
            entry_count=entry_count,
            total_disk_size=size / self.config.size_unit,
            tracked_keys=index_stats["tracked_keys"],
            cache_hits=index_stats["cache_hits"],
            cache_misses=index_stats["cache_misses"],
            cache_hit_rate=hit_rate,
            evictions=index_stats["evictions"],
        )
