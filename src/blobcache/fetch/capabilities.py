"""Fetch and decode capabilities injected into the FetchCoordinator.

This module defines the abstract interfaces the coordinator depends on and
the production implementations shipped with blobcache. Test doubles are just
other subclasses.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import cloudfiles


class FetchCoordinatorError(Exception):
    """Base exception for cache-aside retrieval errors."""

    pass


class FetchError(FetchCoordinatorError):
    """Raised when content cannot be fetched from its source."""

    pass


class DecodeError(FetchCoordinatorError):
    """Raised when bytes cannot be turned into a usable value."""

    pass


class BaseFetcher(ABC):
    """Abstract base class for blob sources.

    Implementations must be safe to call from worker threads; the
    coordinator runs fetch() outside the event loop.

    Examples:
        >>> class StaticFetcher(BaseFetcher):
        ...     def fetch(self, locator: str) -> bytes:
        ...         return b"payload"
    """

    @abstractmethod
    def fetch(self, locator: str) -> bytes:
        """Fetch the bytes stored at a locator.

        Args:
            locator: Resolved locator (e.g. 'gs://bucket/cat.png',
                'file:///data/cat.png')

        Returns:
            Raw content bytes

        Raises:
            FetchError: If the content cannot be retrieved
        """
        pass


class BaseDecoder(ABC):
    """Abstract base class for turning raw bytes into values."""

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        """Decode or validate raw bytes.

        Args:
            data: Raw content bytes

        Returns:
            Decoded value

        Raises:
            DecodeError: If the bytes are not usable
        """
        pass


class CloudFilesFetcher(BaseFetcher):
    """Fetch blobs with cloudfiles.

    Supports every protocol cloudfiles reads: gs://, s3://, http(s)://,
    file:// and friends. Empty content is treated as missing.
    """

    def fetch(self, locator: str) -> bytes:
        try:
            data = cloudfiles.CloudFile(locator).get()
        except Exception as e:
            # cloudfiles raises backend-specific exceptions
            raise FetchError(f"Cannot fetch {locator}: {e}") from e

        if not data:
            raise FetchError(f"File not found: {locator}")

        return data


class PassthroughDecoder(BaseDecoder):
    """Return non-empty bytes unchanged."""

    def decode(self, data: bytes) -> bytes:
        if not data:
            raise DecodeError("Cannot decode empty content")
        return bytes(data)


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


@dataclass(frozen=True)
class ImageBlob:
    """Validated image bytes.

    Attributes:
        format: 'png' or 'jpeg'
        data: Raw image bytes
    """

    format: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ImageDecoder(BaseDecoder):
    """Validate PNG and JPEG content by signature.

    Examples:
        >>> ImageDecoder().decode(b"\\x89PNG\\r\\n\\x1a\\n...").format
        'png'
    """

    def decode(self, data: bytes) -> ImageBlob:
        data = bytes(data)
        if data.startswith(PNG_SIGNATURE) and len(data) > len(PNG_SIGNATURE):
            return ImageBlob(format="png", data=data)
        if data.startswith(JPEG_SIGNATURE) and len(data) > len(JPEG_SIGNATURE):
            return ImageBlob(format="jpeg", data=data)
        raise DecodeError(
            f"Invalid image data: unrecognized signature {data[:8]!r}"
        )
