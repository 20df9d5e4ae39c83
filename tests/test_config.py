"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from diskbox.cache.disk_store import DiskStore
from diskbox.config import (
    DEFAULT_CLEAN_EVERY_MS,
    Settings,
    StoreOptions,
    clear_settings_cache,
    get_settings,
)
from diskbox.exceptions import ConfigurationError


class TestStoreOptions:
    """Tests for construction-time options."""

    def test_defaults(self, temp_dir: Path) -> None:
        options = StoreOptions.build(cache_path=temp_dir)
        assert options.cache_path == temp_dir
        assert options.clean_every == DEFAULT_CLEAN_EVERY_MS

    def test_string_path_is_converted(self, temp_dir: Path) -> None:
        options = StoreOptions.build(cache_path=str(temp_dir), clean_every=0)
        assert options.cache_path == temp_dir
        assert options.clean_every == 0

    def test_missing_cache_path(self) -> None:
        with pytest.raises(ConfigurationError, match="Missing cache_path"):
            StoreOptions.build(cache_path=None)

    def test_unknown_option(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError):
            StoreOptions.build(cache_path=temp_dir, clean_evry=10)

    def test_error_context(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            StoreOptions.build(cache_path=temp_dir, clean_every="notbloodylikely")
        assert exc_info.value.context["field"] == "clean_every"
        assert exc_info.value.context["value"] == "notbloodylikely"


class TestSettings:
    """Tests for environment-driven settings."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        settings = get_settings()

        assert settings.CACHE_PATH == Path(mock_env_vars["DISKBOX_CACHE_PATH"])
        assert settings.CLEAN_EVERY == 0
        assert settings.LOG_LEVEL == "WARNING"
        assert settings.LOG_FILE is None

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.CACHE_PATH == Path(".cache")
        assert settings.CLEAN_EVERY == DEFAULT_CLEAN_EVERY_MS
        assert settings.LOG_LEVEL == "INFO"

    def test_negative_clean_every_rejected(self) -> None:
        with patch.dict(os.environ, {"DISKBOX_CLEAN_EVERY": "-1"}):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_bad_log_level_rejected(self) -> None:
        with patch.dict(os.environ, {"DISKBOX_LOG_LEVEL": "LOUD"}):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_settings_are_cached(self, mock_env_vars: dict[str, str]) -> None:
        assert get_settings() is get_settings()
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first

    def test_display(self, mock_env_vars: dict[str, str]) -> None:
        display = get_settings().display()
        assert display["CACHE_PATH"] == mock_env_vars["DISKBOX_CACHE_PATH"]
        assert display["CLEAN_EVERY"] == 0
        assert display["LOG_FILE"] is None

    def test_store_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        store = DiskStore.from_settings(get_settings())
        assert store.root == Path(mock_env_vars["DISKBOX_CACHE_PATH"])
        assert store.options.clean_every == 0
        assert store.sweeper.enabled is False
