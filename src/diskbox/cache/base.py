"""
Abstract interface for cache connections.

A connection is started before use and stopped when done. Keys are
(segment, id) pairs; values come back wrapped in a CachedItem carrying the
remaining ttl, or as None on a miss.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from diskbox.exceptions import ValidationError
from diskbox.types import CachedItem, CacheKey


class CacheProtocol(ABC):
    """Abstract interface for cache implementations."""

    @abstractmethod
    async def start(self) -> None:
        """Make the connection ready. Calling it when ready is a no-op."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...

    @abstractmethod
    def is_ready(self) -> bool:
        """Whether start() has succeeded and stop() has not been called since."""
        ...

    @abstractmethod
    async def get(self, key: CacheKey | dict[str, Any]) -> CachedItem | None:
        """Get an entry, or None if it is absent or expired."""
        ...

    @abstractmethod
    async def set(self, key: CacheKey | dict[str, Any], value: Any, ttl: int) -> None:
        """Store a value for ``ttl`` milliseconds."""
        ...

    @abstractmethod
    async def drop(self, key: CacheKey | dict[str, Any]) -> None:
        """Remove an entry. Dropping a missing entry is not an error."""
        ...

    @abstractmethod
    def validate_segment_name(self, name: str) -> ValidationError | None:
        """Return an error describing why ``name`` is unusable, or None."""
        ...
