"""Unit tests for cache configuration."""

import json
from pathlib import Path

import pytest

from blobcache.cache import config as config_module
from blobcache.cache.config import (
    DEFAULT_EXTENSIONS,
    CacheConfig,
    get_global_config,
    set_global_config,
)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Reset the global configuration around each test."""
    set_global_config(None)
    yield
    set_global_config(None)


class TestCacheConfigDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        """Test the default configuration."""
        config = CacheConfig()

        assert config.capacity == 10000
        assert config.recognized_extensions == DEFAULT_EXTENSIONS
        assert config.size_unit == 1000
        assert config.cache_dir == config.storage_root / "Cache"

    def test_cache_dir_derived_from_storage_root(self, tmp_path):
        """Test cache_dir defaults to a Cache subdirectory."""
        config = CacheConfig(storage_root=tmp_path)
        assert config.cache_dir == tmp_path / "Cache"

    def test_explicit_cache_dir(self, tmp_path):
        """Test an explicit cache_dir is used as-is."""
        config = CacheConfig(storage_root=tmp_path, cache_dir=str(tmp_path / "blobs"))
        assert config.cache_dir == tmp_path / "blobs"
        assert isinstance(config.cache_dir, Path)

    def test_extensions_normalized(self):
        """Test extensions without a dot get one."""
        config = CacheConfig(recognized_extensions=("jpg", ".png"))
        assert config.recognized_extensions == (".jpg", ".png")

    def test_extensions_none(self):
        """Test None disables extension filtering."""
        config = CacheConfig(recognized_extensions=None)
        assert config.recognized_extensions is None


class TestCacheConfigPersistence:
    """Test saving and loading configuration files."""

    def test_save_and_load(self, tmp_path):
        """Test a saved configuration loads back unchanged."""
        config_path = tmp_path / "config.json"
        config = CacheConfig(
            storage_root=tmp_path,
            capacity=25,
            recognized_extensions=(".gif",),
            lock_timeout=5,
        )
        config.save(config_path)

        loaded = CacheConfig.load(config_path)

        assert loaded.cache_dir == tmp_path / "Cache"
        assert loaded.capacity == 25
        assert loaded.recognized_extensions == (".gif",)
        assert loaded.lock_timeout == 5

    def test_save_writes_json(self, tmp_path):
        """Test the saved file is plain JSON."""
        config_path = tmp_path / "nested" / "config.json"
        CacheConfig(storage_root=tmp_path, recognized_extensions=None).save(config_path)

        data = json.loads(config_path.read_text())
        assert data["recognized_extensions"] is None
        assert data["capacity"] == 10000

    def test_load_missing_file_returns_defaults(self, tmp_path):
        """Test loading a missing file falls back to defaults."""
        config = CacheConfig.load(tmp_path / "missing.json")
        assert config.capacity == 10000


class TestCacheConfigFromEnv:
    """Test environment variable configuration."""

    def test_from_env(self, tmp_path, monkeypatch):
        """Test all supported environment variables."""
        monkeypatch.setenv("BLOBCACHE_DIR", str(tmp_path / "env-cache"))
        monkeypatch.setenv("BLOBCACHE_CAPACITY", "3")
        monkeypatch.setenv("BLOBCACHE_EXTENSIONS", "gif, .webp")
        monkeypatch.setenv("BLOBCACHE_LOCK_TIMEOUT", "2.5")

        config = CacheConfig.from_env()

        assert config.cache_dir == tmp_path / "env-cache"
        assert config.capacity == 3
        assert config.recognized_extensions == (".gif", ".webp")
        assert config.lock_timeout == 2.5

    def test_wildcard_extensions(self, monkeypatch):
        """Test '*' counts every file."""
        monkeypatch.setenv("BLOBCACHE_EXTENSIONS", "*")
        assert CacheConfig.from_env().recognized_extensions is None

    def test_unset_env_uses_defaults(self, monkeypatch):
        """Test defaults apply when nothing is set."""
        for name in (
            "BLOBCACHE_DIR",
            "BLOBCACHE_CAPACITY",
            "BLOBCACHE_EXTENSIONS",
            "BLOBCACHE_LOCK_TIMEOUT",
        ):
            monkeypatch.delenv(name, raising=False)

        config = CacheConfig.from_env()
        assert config.capacity == 10000
        assert config.recognized_extensions == DEFAULT_EXTENSIONS


class TestGlobalConfig:
    """Test the process-wide default configuration."""

    def test_set_and_get(self, tmp_path):
        """Test set_global_config overrides the default."""
        config = CacheConfig(storage_root=tmp_path, capacity=7)
        set_global_config(config)
        assert get_global_config() is config

    def test_falls_back_to_env(self, tmp_path, monkeypatch):
        """Test env variables are used when no config file exists."""
        monkeypatch.setattr(config_module, "DEFAULT_STORAGE_ROOT", tmp_path)
        monkeypatch.setenv("BLOBCACHE_CAPACITY", "11")

        assert get_global_config().capacity == 11

    def test_reads_config_file(self, tmp_path, monkeypatch):
        """Test the default config file wins over env variables."""
        monkeypatch.setattr(config_module, "DEFAULT_STORAGE_ROOT", tmp_path)
        monkeypatch.setenv("BLOBCACHE_CAPACITY", "11")
        CacheConfig(storage_root=tmp_path, capacity=99).save(tmp_path / "config.json")

        assert get_global_config().capacity == 99
