"""Utility functions for blobcache."""

import os
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import urlsplit

# Cache layout constants
CACHE_DIRNAME = "Cache"
LOCK_FILENAME = ".blobcache.lock"
TEMP_SUFFIX = ".tmp"

# Key used when an identifier has no usable path segment
DEFAULT_KEY = "image"

CLOUD_PREFIXES = (
    "s3://",
    "gs://",
    "gcs://",
    "az://",
    "azure://",
    "https://",
    "http://",
    "file://",
)

SUPPORTED_SCHEMES = frozenset(prefix[: -len("://")] for prefix in CLOUD_PREFIXES)


def is_cloud_path(path: Union[str, Path]) -> bool:
    """Check if a path is a remote (or file://) locator.

    Args:
        path: Path to check

    Returns:
        True if path starts with a supported protocol

    Examples:
        >>> is_cloud_path('s3://bucket/photo.jpg')
        True
        >>> is_cloud_path('/local/path/photo.jpg')
        False
        >>> is_cloud_path('https://example.com/photo.png')
        True
    """
    return str(path).startswith(CLOUD_PREFIXES)


def resolve_path(
    path: Union[str, Path],
    base_dir: Optional[Union[str, Path]] = None,
) -> str:
    """Resolve a path to a locator the fetch layer understands.

    Remote locators are returned unchanged; local paths become absolute
    ``file://`` locators. Relative paths are made absolute lexically, so
    this is safe to call on the event loop.

    Args:
        path: Path to resolve
        base_dir: Base directory for relative paths (defaults to cwd)

    Returns:
        Locator string

    Examples:
        >>> resolve_path('s3://bucket/photo.jpg')
        's3://bucket/photo.jpg'
        >>> resolve_path('/data/photo.jpg')
        'file:///data/photo.jpg'
    """
    if is_cloud_path(path):
        return str(path)

    path_obj = Path(path)
    if not path_obj.is_absolute():
        if base_dir:
            path_obj = Path(base_dir) / path_obj
        # Lexical only; symlinks are left alone and nothing is stat()ed
        path_obj = Path(os.path.abspath(path_obj))

    return "file://" + str(path_obj)


def is_valid_identifier(identifier: object) -> bool:
    """Check whether an identifier can be turned into a locator.

    A valid identifier is a non-empty string without whitespace or control
    characters that ``urlsplit`` accepts, and that either carries a supported
    scheme or no scheme at all (a local path).

    Examples:
        >>> is_valid_identifier('https://example.com/a.png')
        True
        >>> is_valid_identifier('ftp://example.com/a.png')
        False
        >>> is_valid_identifier('not a url')
        False
    """
    if not isinstance(identifier, str) or not identifier:
        return False
    if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in identifier):
        return False

    try:
        parts = urlsplit(identifier)
    except ValueError:
        # Malformed netloc, e.g. an unbalanced IPv6 bracket
        return False

    if not parts.scheme:
        return bool(parts.path)
    if parts.scheme.lower() not in SUPPORTED_SCHEMES:
        return False
    return bool(parts.netloc or parts.path)


def derive_key(locator: str) -> str:
    """Derive the cache key for a locator from its last path segment.

    Different locators sharing a final segment map to the same key.

    Args:
        locator: Locator string (remote URL or ``file://`` path)

    Returns:
        Last non-empty path segment, or DEFAULT_KEY if there is none

    Examples:
        >>> derive_key('https://cdn.example.com/img/cat.png')
        'cat.png'
        >>> derive_key('https://cdn.example.com/')
        'image'
    """
    path = urlsplit(locator).path
    segments = [s for s in path.split("/") if s and s not in (".", "..")]
    if not segments:
        return DEFAULT_KEY
    key = segments[-1]
    try:
        validate_key(key)
    except ValueError:
        return DEFAULT_KEY
    return key


def validate_key(key: str) -> None:
    """Validate that a key can be used as a file name in the cache directory.

    Args:
        key: Cache key to validate

    Raises:
        ValueError: If key is empty, a relative path component, contains a
            path separator or NUL, or is a reserved name
    """
    if not isinstance(key, str) or not key:
        raise ValueError(f"Invalid cache key: {key!r}. Keys must be non-empty strings.")
    if key in (".", ".."):
        raise ValueError(f"Invalid cache key: {key!r}")
    if any(ch in key for ch in ("/", "\\", "\x00")):
        raise ValueError(
            f"Invalid cache key: {key!r}. Keys cannot contain path separators."
        )
    if key == LOCK_FILENAME or key.endswith(TEMP_SUFFIX):
        raise ValueError(f"Invalid cache key: {key!r} is reserved.")


def has_recognized_extension(
    filename: str, extensions: Optional[Iterable[str]]
) -> bool:
    """Check if a file name counts towards cache capacity.

    Args:
        filename: Name of the file in the cache directory
        extensions: Recognized suffixes (e.g. ('.jpg', '.png')), or None to
            recognize every file

    Returns:
        True if the file should be counted

    Examples:
        >>> has_recognized_extension('cat.PNG', ('.jpg', '.png'))
        True
        >>> has_recognized_extension('notes.txt', ('.jpg', '.png'))
        False
        >>> has_recognized_extension('notes.txt', None)
        True
    """
    if extensions is None:
        return True
    lowered = filename.lower()
    return any(lowered.endswith(ext.lower()) for ext in extensions)
