"""
Configuration management using pydantic and pydantic-settings.

StoreOptions validates the options a DiskStore is constructed with.
Settings loads defaults for the CLI from DISKBOX_* environment variables
and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from diskbox.exceptions import ConfigurationError

DEFAULT_CLEAN_EVERY_MS = 3_600_000


class StoreOptions(BaseModel):
    """Construction options for a DiskStore.

    ``clean_every`` is the sweep interval in milliseconds; 0 disables the
    sweeper. It must be a real integer: strings and floats are rejected
    rather than coerced.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_path: Path
    clean_every: StrictInt = Field(default=DEFAULT_CLEAN_EVERY_MS, ge=0)

    @classmethod
    def build(cls, **values: Any) -> StoreOptions:
        """Validate options, raising ConfigurationError instead of pydantic's error."""
        if values.get("cache_path") in (None, ""):
            raise ConfigurationError("Missing cache_path value")
        try:
            return cls(**values)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ConfigurationError(
                f"Invalid store option {field}: {first['msg']}",
                context={"field": field, "value": first.get("input")},
            ) from e


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Optional:
        DISKBOX_CACHE_PATH: Root directory of the cache
        DISKBOX_CLEAN_EVERY: Sweep interval in milliseconds (0 disables)
        DISKBOX_LOG_LEVEL: Logging level
        DISKBOX_LOG_FILE: JSON lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="DISKBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_PATH: Path = Field(default=Path(".cache"), description="Cache root directory")
    CLEAN_EVERY: int = Field(
        default=DEFAULT_CLEAN_EVERY_MS,
        ge=0,
        description="Sweep interval in milliseconds (0 disables sweeping)",
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON lines log file")

    def store_options(self) -> StoreOptions:
        """Options for a DiskStore built from these settings."""
        return StoreOptions.build(cache_path=self.CACHE_PATH, clean_every=self.CLEAN_EVERY)

    def display(self) -> dict[str, str | int | None]:
        """Return settings as plain values for display."""
        return {
            "CACHE_PATH": str(self.CACHE_PATH),
            "CLEAN_EVERY": self.CLEAN_EVERY,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Raises:
        pydantic.ValidationError: If a setting is invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
