"""Cache-aside retrieval on top of CacheStore.

FetchCoordinator.resolve() looks a key up in the store, falls back to the
injected fetcher on a miss (or when cached bytes no longer decode), populates
the store with what was fetched and hands back the decoded value.

Blocking work (disk I/O, fetching, decoding) runs in worker threads via
asyncio.to_thread so concurrent resolves never stall the event loop.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from blobcache.cache.store import CacheError, CacheStore
from blobcache.fetch.capabilities import (
    BaseDecoder,
    BaseFetcher,
    CloudFilesFetcher,
    DecodeError,
    FetchCoordinatorError,
    FetchError,
    PassthroughDecoder,
)
from blobcache.utils import derive_key, is_valid_identifier, resolve_path

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FETCH = "fetch"


class InvalidIdentifierError(FetchCoordinatorError, ValueError):
    """Raised when an identifier cannot be parsed into a locator."""

    pass


@dataclass
class ResolveResult:
    """Outcome of a single resolve() call.

    Attributes:
        identifier: Identifier passed by the caller
        key: Cache key derived from the identifier
        value: Decoded value, or None on failure
        source: 'cache' or 'fetch' on success, None on failure
        error: FetchError or DecodeError on failure
    """

    identifier: str
    key: str
    value: Any = None
    source: Optional[str] = None
    error: Optional[FetchCoordinatorError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.source is not None


class FetchCoordinator:
    """Resolve identifiers through a CacheStore with fetch fallback.

    Examples:
        >>> store = CacheStore(CacheConfig(cache_dir=tmp_dir))
        >>> coordinator = FetchCoordinator(store, decoder=ImageDecoder())
        >>> result = await coordinator.resolve('gs://bucket/img/cat.png')
        >>> result.source
        'fetch'
        >>> (await coordinator.resolve('gs://bucket/img/cat.png')).source
        'cache'
    """

    def __init__(
        self,
        store: CacheStore,
        fetcher: Optional[BaseFetcher] = None,
        decoder: Optional[BaseDecoder] = None,
    ):
        """Initialize the coordinator.

        Args:
            store: Shared cache store
            fetcher: Blob source (CloudFilesFetcher if None)
            decoder: Value decoder (PassthroughDecoder if None)
        """
        self.store = store
        self.fetcher = fetcher or CloudFilesFetcher()
        self.decoder = decoder or PassthroughDecoder()

    @staticmethod
    def locate(identifier: str) -> str:
        """Validate an identifier and resolve it to a locator.

        Args:
            identifier: Remote URL or local path

        Returns:
            Locator string understood by the fetcher

        Raises:
            InvalidIdentifierError: If the identifier is malformed
        """
        if not is_valid_identifier(identifier):
            raise InvalidIdentifierError(f"Invalid identifier: {identifier!r}")
        return resolve_path(identifier)

    async def resolve(self, identifier: str) -> ResolveResult:
        """Get the value for an identifier, from cache or from its source.

        Args:
            identifier: Remote URL or local path

        Returns:
            ResolveResult with the decoded value, or with an error if the
            content could not be fetched or decoded

        Raises:
            InvalidIdentifierError: If the identifier is malformed. Nothing
                is read or fetched in that case.
        """
        locator = self.locate(identifier)
        key = derive_key(locator)

        cached = await self._lookup(key)
        if cached is not None:
            try:
                value = await asyncio.to_thread(self._decode, cached)
            except DecodeError as e:
                # Corrupt entries are bypassed; a successful fetch overwrites them
                logger.warning(
                    f"Cached {key} could not be decoded, fetching {locator}: {e}"
                )
            else:
                logger.debug(f"Resolved {identifier} from cache as {key}")
                return ResolveResult(
                    identifier=identifier, key=key, value=value, source=SOURCE_CACHE
                )

        return await self._fetch_and_cache(identifier, locator, key)

    async def resolve_many(self, identifiers: Iterable[str]) -> List[ResolveResult]:
        """Resolve several identifiers concurrently.

        All identifiers are validated before any work starts.

        Args:
            identifiers: Remote URLs or local paths

        Returns:
            Results in input order

        Raises:
            InvalidIdentifierError: If any identifier is malformed
        """
        identifiers = list(identifiers)
        for identifier in identifiers:
            self.locate(identifier)

        results = await asyncio.gather(
            *(self.resolve(identifier) for identifier in identifiers)
        )
        return list(results)

    async def _lookup(self, key: str) -> Optional[bytes]:
        """Read key from the store. Store errors count as a miss."""
        try:
            return await asyncio.to_thread(self.store.get, key)
        except CacheError as e:
            logger.warning(f"Cache lookup failed for {key}, treating as miss: {e}")
            return None

    async def _fetch_and_cache(
        self, identifier: str, locator: str, key: str
    ) -> ResolveResult:
        """Fetch from the source, populate the store, then decode."""
        try:
            data = await asyncio.to_thread(self._fetch, locator)
        except FetchError as e:
            logger.warning(f"Fetch failed for {locator}: {e}")
            return ResolveResult(identifier=identifier, key=key, error=e)

        try:
            await asyncio.to_thread(self.store.set, key, data)
        except CacheError as e:
            # The fetched value is still usable without a cache entry
            logger.warning(f"Could not cache {key}: {e}")

        try:
            value = await asyncio.to_thread(self._decode, data)
        except DecodeError as e:
            logger.warning(f"Fetched content for {locator} could not be decoded: {e}")
            return ResolveResult(identifier=identifier, key=key, error=e)

        logger.debug(f"Resolved {identifier} from source as {key}")
        return ResolveResult(
            identifier=identifier, key=key, value=value, source=SOURCE_FETCH
        )

    def _fetch(self, locator: str) -> bytes:
        try:
            data = self.fetcher.fetch(locator)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"Cannot fetch {locator}: {e}") from e

        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise FetchError(
                f"Fetcher returned {type(data).__name__} for {locator}, expected bytes"
            )
        return bytes(data)

    def _decode(self, data: bytes) -> Any:
        try:
            return self.decoder.decode(data)
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"Cannot decode content: {e}") from e
