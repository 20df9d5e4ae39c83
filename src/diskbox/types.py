"""
Core types for the disk cache.

- CacheKey: two-part key (segment namespace + id)
- Envelope: the persisted record wrapping a cached value
- CachedItem: what a successful read returns (remaining ttl, not original)
- RecordStatus: what examining a record file found
- now_ms(): wall clock in integer milliseconds
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from diskbox.exceptions import ValidationError


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def segment_name_error(name: Any) -> ValidationError | None:
    """Return the problem with a segment name, or None if it is usable."""
    if not name:
        return ValidationError("Empty string", context={"field": "segment"})
    if not isinstance(name, str):
        return ValidationError(
            "Segment must be a string",
            context={"field": "segment", "value": name},
        )
    if "\0" in name:
        return ValidationError("Includes null character", context={"field": "segment"})
    return None


@dataclass(frozen=True)
class CacheKey:
    """Address of a cache entry.

    ``segment`` becomes a directory under the cache root and must be a
    non-empty string without NUL. ``id`` may be empty. Path separators
    and ``..`` in a segment are not checked, so such a segment can place
    records outside the cache root.
    """

    segment: str
    id: str

    def __post_init__(self) -> None:
        error = segment_name_error(self.segment)
        if error is not None:
            raise error
        if not isinstance(self.id, str):
            raise ValidationError(
                "Key id must be a string",
                context={"field": "id", "value": self.id},
            )

    @classmethod
    def coerce(cls, key: Any) -> CacheKey:
        """Accept a CacheKey or a mapping with ``segment`` and ``id``.

        Raises:
            ValidationError: If the key is None, not a mapping, or lacks
                either field.
        """
        if isinstance(key, CacheKey):
            return key
        if not isinstance(key, Mapping):
            raise ValidationError(
                "Invalid key", context={"expected": "CacheKey or mapping", "value": key}
            )
        if "segment" not in key or "id" not in key:
            raise ValidationError(
                "Invalid key", context={"expected": "segment and id", "value": dict(key)}
            )
        return cls(segment=key["segment"], id=key["id"])

    def to_dict(self) -> dict[str, str]:
        return {"segment": self.segment, "id": self.id}


@dataclass(frozen=True)
class Envelope:
    """Persisted record: the item plus when it was stored and for how long.

    ``stored`` and ``ttl`` are integer milliseconds. The record is live
    while ``now < stored + ttl``.
    """

    key: CacheKey
    item: Any
    stored: int
    ttl: int

    @property
    def expires_at(self) -> int:
        return self.stored + self.ttl

    def is_live(self, now: int) -> bool:
        return now < self.expires_at

    def remaining(self, now: int) -> int:
        return self.expires_at - now


@dataclass(frozen=True)
class CachedItem:
    """Result of a cache hit.

    ``ttl`` is the time left before expiry at the moment of the read.
    """

    key: CacheKey
    item: Any
    stored: int
    ttl: int


class RecordStatus(str, Enum):
    """Outcome of examining one record file."""

    HIT = "hit"
    MISSING = "missing"
    EXPIRED = "expired"  # deletion scheduled
    CORRUPT = "corrupt"  # deleted (best effort)
    FOREIGN = "foreign"  # live record stored under a colliding key
