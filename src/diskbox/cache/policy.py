"""
Segment-bound view of a cache connection.

A CachePolicy fixes the segment and the default lifetime so callers deal
only in ids and values.
"""

from __future__ import annotations

from typing import Any

from diskbox.cache.base import CacheProtocol
from diskbox.exceptions import ValidationError
from diskbox.types import CacheKey


class CachePolicy:
    """Get/set/drop values by id within one segment."""

    def __init__(self, connection: CacheProtocol, segment: str, expires_in: int) -> None:
        """Bind a connection to a segment.

        Args:
            connection: The cache connection (need not be started yet).
            segment: Segment name.
            expires_in: Default ttl in milliseconds for set().

        Raises:
            ValidationError: If the segment name is rejected by the
                connection or expires_in is not a positive integer.
        """
        error = connection.validate_segment_name(segment)
        if error is not None:
            raise error
        if not isinstance(expires_in, int) or isinstance(expires_in, bool) or expires_in <= 0:
            raise ValidationError(
                "expires_in must be a positive integer",
                context={"field": "expires_in", "value": expires_in},
            )

        self.connection = connection
        self.segment = segment
        self.expires_in = expires_in

    def _key(self, key_id: str) -> CacheKey:
        return CacheKey(segment=self.segment, id=key_id)

    async def get(self, key_id: str) -> Any | None:
        """Return the cached value, or None on a miss."""
        cached = await self.connection.get(self._key(key_id))
        return cached.item if cached is not None else None

    async def set(self, key_id: str, value: Any, ttl: int | None = None) -> None:
        await self.connection.set(self._key(key_id), value, ttl if ttl is not None else self.expires_in)

    async def drop(self, key_id: str) -> None:
        await self.connection.drop(self._key(key_id))
