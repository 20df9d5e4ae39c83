"""
Tests for the record envelope codec.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
import pytest

from diskbox.cache.codec import decode_envelope, encode_envelope
from diskbox.exceptions import CorruptionError, SchemaMismatchError, SerializationError
from diskbox.types import CacheKey, Envelope

KEY = CacheKey(segment="seg", id="id")


def _record(**overrides: Any) -> bytes:
    body: dict[str, Any] = {
        "key": {"segment": "seg", "id": "id"},
        "item": "value",
        "stored": 1_700_000_000_000,
        "ttl": 5000,
    }
    body.update(overrides)
    return orjson.dumps(body)


class TestEncode:
    """Test encoding."""

    def test_encoded_fields(self) -> None:
        envelope = Envelope(key=KEY, item={"foo": [1, 2]}, stored=1_700_000_000_000, ttl=5000)

        obj = orjson.loads(encode_envelope(envelope))

        assert obj["key"] == {"segment": "seg", "id": "id"}
        assert obj["item"] == {"foo": [1, 2]}
        assert obj["stored"] == 1_700_000_000_000
        assert obj["ttl"] == 5000
        assert obj["expires"].startswith("2023-11-14T22:13:25")

    def test_decode_inverts_encode(self) -> None:
        envelope = Envelope(key=KEY, item={"nested": {"n": None}}, stored=1, ttl=2)
        assert decode_envelope(encode_envelope(envelope)) == envelope

    def test_items_are_json_normalized(self) -> None:
        """Test that values orjson writes natively come back as JSON types."""
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        item = {"when": moment, "pair": (1, 2)}

        decoded = decode_envelope(encode_envelope(Envelope(key=KEY, item=item, stored=1, ttl=1)))

        assert decoded.item == {"when": "2024-01-02T03:04:05+00:00", "pair": [1, 2]}

    def test_circular_reference(self) -> None:
        value: dict[str, Any] = {}
        value["self"] = value
        with pytest.raises(SerializationError):
            encode_envelope(Envelope(key=KEY, item=value, stored=1, ttl=1))

    def test_unsupported_type(self) -> None:
        with pytest.raises(SerializationError) as exc_info:
            encode_envelope(Envelope(key=KEY, item={1, 2}, stored=1, ttl=1))
        assert exc_info.value.context == {"segment": "seg", "id": "id"}


class TestDecode:
    """Test decoding and corruption detection."""

    def test_valid_record(self) -> None:
        envelope = decode_envelope(_record())
        assert envelope == Envelope(key=KEY, item="value", stored=1_700_000_000_000, ttl=5000)

    def test_expires_field_is_ignored(self) -> None:
        envelope = decode_envelope(_record(expires="not a date"))
        assert envelope.ttl == 5000

    @pytest.mark.parametrize("data", [b"", b"{", b"bad data", _record() + b"trailing", b"\xff\xfe"])
    def test_unparseable(self, data: bytes) -> None:
        with pytest.raises(CorruptionError) as exc_info:
            decode_envelope(data)
        assert not isinstance(exc_info.value, SchemaMismatchError)

    @pytest.mark.parametrize(
        "data",
        [
            b"[]",
            b'"string"',
            b"{}",
            orjson.dumps({"key": {"segment": "seg", "id": "id"}, "stored": 1, "ttl": 1}),
            _record(key=None),
            _record(key={"segment": "seg"}),
            _record(key={"segment": "", "id": "id"}),
            _record(stored="yesterday"),
            _record(ttl=True),
            _record(ttl=1.5),
        ],
    )
    def test_wrong_schema(self, data: bytes) -> None:
        with pytest.raises(SchemaMismatchError):
            decode_envelope(data)

    def test_null_item_is_valid(self) -> None:
        assert decode_envelope(_record(item=None)).item is None
