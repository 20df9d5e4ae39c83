"""
Pytest configuration and fixtures for disk cache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Generator
from unittest.mock import patch

import pytest

from diskbox.cache.codec import encode_envelope
from diskbox.cache.disk_store import DiskStore
from diskbox.config import clear_settings_cache
from diskbox.types import CacheKey, Envelope, now_ms


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def cache_root(temp_dir: Path) -> Path:
    """Provide an existing, empty cache root."""
    root = temp_dir / "cache"
    root.mkdir()
    return root


@pytest.fixture
async def disk_store(cache_root: Path) -> AsyncGenerator[DiskStore, None]:
    """Provide a started store with sweeping disabled."""
    store = DiskStore(cache_root, clean_every=0)
    await store.start()
    yield store
    await store.drain()
    store.stop()


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide DISKBOX_* environment variables pointing at temp_dir."""
    env_vars = {
        "DISKBOX_CACHE_PATH": str(temp_dir / "cache"),
        "DISKBOX_CLEAN_EVERY": "0",
        "DISKBOX_LOG_LEVEL": "WARNING",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


RecordWriter = Callable[..., Path]


@pytest.fixture
def write_record() -> RecordWriter:
    """Write record files directly, bypassing the store.

    Defaults to a record that expired ten seconds ago.
    """

    def _write(
        path: Path,
        key: CacheKey,
        item: Any = "stale",
        stored: int | None = None,
        ttl: int = 10_000,
    ) -> Path:
        if stored is None:
            stored = now_ms() - 20_000
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(encode_envelope(Envelope(key=key, item=item, stored=stored, ttl=ttl)))
        return path

    return _write
