"""
Envelope codec.

Records are stored as orjson-encoded JSON objects:

    {"key": {"segment": ..., "id": ...}, "item": ..., "stored": <ms>,
     "ttl": <ms>, "expires": "<ISO-8601 UTC>" or null}

``expires`` is only there for people inspecting files by hand and is
ignored on decode.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson

from diskbox.exceptions import (
    CorruptionError,
    SchemaMismatchError,
    SerializationError,
    ValidationError,
)
from diskbox.types import CacheKey, Envelope


def encode_envelope(envelope: Envelope) -> bytes:
    """Serialize an envelope.

    Items are JSON-normalized: orjson writes datetime and UUID values as
    strings and dataclasses as objects, so they read back as str and dict.

    Raises:
        SerializationError: If the item cannot be encoded (reference
            cycles, unsupported types). Nothing is returned in that case,
            so no partial write can follow.
    """
    try:
        expires: str | None = datetime.fromtimestamp(
            envelope.expires_at / 1000, tz=timezone.utc
        ).isoformat()
    except (OverflowError, OSError, ValueError):
        expires = None
    body = {
        "key": envelope.key.to_dict(),
        "item": envelope.item,
        "stored": envelope.stored,
        "ttl": envelope.ttl,
        "expires": expires,
    }
    try:
        return orjson.dumps(body)
    except (orjson.JSONEncodeError, TypeError) as e:
        raise SerializationError(
            f"Cannot serialize cache item: {e}",
            context={"segment": envelope.key.segment, "id": envelope.key.id},
        ) from e


def _require_int(obj: dict[str, Any], field: str) -> int:
    value = obj.get(field)
    # bool is an int subclass; a stored flag is not a timestamp
    if not isinstance(value, int) or isinstance(value, bool):
        raise SchemaMismatchError(
            "Record field is not an integer", context={"reason": f"bad {field}"}
        )
    return value


def decode_envelope(data: bytes) -> Envelope:
    """Parse record bytes back into an envelope.

    Raises:
        CorruptionError: If the bytes are not JSON at all.
        SchemaMismatchError: If they are JSON but not an envelope.
    """
    try:
        obj = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise CorruptionError("Record is not parseable", context={"reason": str(e)}) from e

    if not isinstance(obj, dict):
        raise SchemaMismatchError("Record is not an object", context={"reason": "not an object"})
    if "item" not in obj:
        raise SchemaMismatchError("Record has no item", context={"reason": "missing item"})

    raw_key = obj.get("key")
    if (
        not isinstance(raw_key, dict)
        or not isinstance(raw_key.get("segment"), str)
        or not isinstance(raw_key.get("id"), str)
    ):
        raise SchemaMismatchError("Record key is malformed", context={"reason": "bad key"})

    try:
        key = CacheKey(segment=raw_key["segment"], id=raw_key["id"])
    except ValidationError as e:
        raise SchemaMismatchError("Record key is malformed", context={"reason": e.message}) from e

    return Envelope(
        key=key,
        item=obj["item"],
        stored=_require_int(obj, "stored"),
        ttl=_require_int(obj, "ttl"),
    )
