"""Cache-aside retrieval: look up, fetch on miss, populate, decode."""

from blobcache.fetch.capabilities import (
    BaseDecoder,
    BaseFetcher,
    CloudFilesFetcher,
    DecodeError,
    FetchCoordinatorError,
    FetchError,
    ImageBlob,
    ImageDecoder,
    PassthroughDecoder,
)
from blobcache.fetch.coordinator import (
    FetchCoordinator,
    InvalidIdentifierError,
    ResolveResult,
)

__all__ = [
    "FetchCoordinator",
    "ResolveResult",
    "BaseFetcher",
    "BaseDecoder",
    "CloudFilesFetcher",
    "PassthroughDecoder",
    "ImageDecoder",
    "ImageBlob",
    "FetchCoordinatorError",
    "FetchError",
    "DecodeError",
    "InvalidIdentifierError",
]
