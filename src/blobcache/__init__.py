"""blobcache: Disk-backed blob cache with frequency-based eviction and cache-aside fetching."""

__version__ = "0.1.0"

from blobcache.cache import CacheConfig, CacheStore
from blobcache.fetch import FetchCoordinator, ResolveResult

__all__ = [
    "CacheConfig",
    "CacheStore",
    "FetchCoordinator",
    "ResolveResult",
    "__version__",
]
