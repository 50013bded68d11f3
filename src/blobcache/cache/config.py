"""Cache configuration management."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from blobcache.utils import CACHE_DIRNAME

DEFAULT_STORAGE_ROOT = Path.home() / ".blobcache"
DEFAULT_EXTENSIONS = (".jpg", ".png")


@dataclass
class CacheConfig:
    """Configuration for the blob cache.

    Attributes:
        storage_root: Application storage root. The blob directory lives in
            a ``Cache`` subdirectory unless cache_dir is given explicitly.
        cache_dir: Directory holding one file per cached key. Defaults to
            ``storage_root / "Cache"``.
        capacity: Maximum number of counted entries before eviction runs
        recognized_extensions: File suffixes counted towards capacity.
            None counts every blob file in the directory.
        size_unit: Divisor applied by total_disk_size (1000 = kilobytes)
        lock_timeout: Seconds to wait for the store lock
    """

    storage_root: Path = DEFAULT_STORAGE_ROOT
    cache_dir: Optional[Path] = None
    capacity: int = 10000
    recognized_extensions: Optional[Tuple[str, ...]] = field(
        default=DEFAULT_EXTENSIONS
    )
    size_unit: int = 1000
    lock_timeout: float = 30

    def __post_init__(self):
        """Normalize paths and extensions."""
        self.storage_root = Path(self.storage_root).expanduser()
        if self.cache_dir is None:
            self.cache_dir = self.storage_root / CACHE_DIRNAME
        else:
            self.cache_dir = Path(self.cache_dir).expanduser()

        if self.recognized_extensions is not None:
            self.recognized_extensions = tuple(
                ext if ext.startswith(".") else f".{ext}"
                for ext in self.recognized_extensions
            )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            CacheConfig instance
        """
        if config_path is None:
            config_path = DEFAULT_STORAGE_ROOT / "config.json"

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        for key in ("storage_root", "cache_dir"):
            if data.get(key) is not None:
                data[key] = Path(data[key])
        if data.get("recognized_extensions") is not None:
            data["recognized_extensions"] = tuple(data["recognized_extensions"])

        return cls(**data)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        if config_path is None:
            config_path = self.storage_root / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "storage_root": str(self.storage_root),
            "cache_dir": str(self.cache_dir),
            "capacity": self.capacity,
            "recognized_extensions": (
                list(self.recognized_extensions)
                if self.recognized_extensions is not None
                else None
            ),
            "size_unit": self.size_unit,
            "lock_timeout": self.lock_timeout,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create configuration from environment variables.

        Environment variables:
            BLOBCACHE_DIR: Blob cache directory path
            BLOBCACHE_CAPACITY: Maximum number of counted entries
            BLOBCACHE_EXTENSIONS: Comma separated suffixes ('*' or empty = all)
            BLOBCACHE_LOCK_TIMEOUT: Lock timeout in seconds

        Returns:
            CacheConfig instance
        """
        config = cls()

        if os.getenv("BLOBCACHE_DIR"):
            config.cache_dir = Path(os.getenv("BLOBCACHE_DIR")).expanduser()

        if os.getenv("BLOBCACHE_CAPACITY"):
            config.capacity = int(os.getenv("BLOBCACHE_CAPACITY"))

        if os.getenv("BLOBCACHE_EXTENSIONS") is not None:
            raw = os.getenv("BLOBCACHE_EXTENSIONS", "").strip()
            if raw in ("", "*"):
                config.recognized_extensions = None
            else:
                config.recognized_extensions = tuple(
                    ext if ext.startswith(".") else f".{ext}"
                    for ext in (part.strip() for part in raw.split(","))
                    if ext
                )

        if os.getenv("BLOBCACHE_LOCK_TIMEOUT"):
            config.lock_timeout = float(os.getenv("BLOBCACHE_LOCK_TIMEOUT"))

        return config


# Global cache configuration instance
_global_config: Optional[CacheConfig] = None


def get_global_config() -> CacheConfig:
    """Get global cache configuration.

    Returns:
        Global CacheConfig instance
    """
    global _global_config
    if _global_config is None:
        # Config file wins, then env, then defaults
        config_path = DEFAULT_STORAGE_ROOT / "config.json"
        try:
            if config_path.exists():
                _global_config = CacheConfig.load(config_path)
        except (OSError, ValueError, TypeError):
            _global_config = None
        if _global_config is None:
            _global_config = CacheConfig.from_env()
    return _global_config


def set_global_config(config: Optional[CacheConfig]) -> None:
    """Set global cache configuration.

    Args:
        config: CacheConfig instance to use globally, or None to reset
    """
    global _global_config
    _global_config = config
