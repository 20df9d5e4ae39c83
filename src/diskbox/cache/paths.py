"""
Mapping from a cache key to its record file.

A record for key (segment, id) lives at
``root/segment/dd/ee/<digest>.record`` where ``<digest>`` is the lowercase
hex MD5 of the UTF-8 id and ``dd``/``ee`` are its first two pairs of
characters. The two shard levels keep directory fan-out bounded.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

RECORD_SUFFIX = ".record"

# Sweeper only touches files whose name matches this
RECORD_NAME_PATTERN = re.compile(r"^[0-9a-f]{32}\.record$")


def key_digest(key_id: str) -> str:
    """Hex digest of a key id."""
    return hashlib.md5(key_id.encode("utf-8"), usedforsecurity=False).hexdigest()


def resolve_path(root: Path, segment: str, key_id: str) -> Path:
    """Resolve the record file for (segment, id) under root.

    Pure: the same inputs always give the same path. The segment is not
    validated here.
    """
    digest = key_digest(key_id)
    return root / segment / digest[0:2] / digest[2:4] / f"{digest}{RECORD_SUFFIX}"


def is_record_name(name: str) -> bool:
    """True if a file name follows the record naming scheme."""
    return RECORD_NAME_PATTERN.match(name) is not None
