"""BookCache Serializer - Entry Wire Codecs.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

import msgpack

from bookcache_core.cache.entry import ENTRY_FIELDS, CacheEntry

logger = logging.getLogger(__name__)


class SerializationError(Exception):
    """Raised when an entry cannot be encoded or decoded."""


class Serializer(ABC):
    """Abstract codec for cache entries.

    Every codec writes the same record: ``data``, ``timestamp`` and
    ``ttl`` and nothing else. There is no version field, so a record
    that does not have exactly that shape is rejected.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""
        pass

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize a plain value to bytes."""
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to a plain value."""
        pass

    def encode_entry(self, entry: CacheEntry) -> bytes:
        """Encode an entry to its wire form.

        Args:
            entry: Cache entry

        Returns:
            Encoded bytes

        Raises:
            SerializationError: If the payload is not representable
        """
        try:
            return self.serialize(entry.to_record())
        except (TypeError, ValueError, OverflowError, RecursionError) as e:
            raise SerializationError(f"Cannot encode entry as {self.format_name}: {e}") from e

    def decode_entry(self, raw: bytes) -> CacheEntry:
        """Decode an entry from its wire form.

        Args:
            raw: Encoded bytes

        Returns:
            CacheEntry instance

        Raises:
            SerializationError: If the bytes are not a valid entry record
        """
        try:
            record = self.deserialize(raw)
        except (TypeError, ValueError, UnicodeDecodeError, RecursionError, msgpack.UnpackException) as e:
            raise SerializationError(f"Cannot decode {self.format_name} entry: {e}") from e

        return self._validate(record)

    @staticmethod
    def _validate(record: Any) -> CacheEntry:
        if not isinstance(record, dict) or set(record) != set(ENTRY_FIELDS):
            raise SerializationError(f"Entry record must have exactly {ENTRY_FIELDS}")

        timestamp, ttl = record["timestamp"], record["ttl"]
        for name, value in (("timestamp", timestamp), ("ttl", ttl)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise SerializationError(f"Entry {name} must be an integer, got {value!r}")

        return CacheEntry(data=record["data"], timestamp=timestamp, ttl=ttl)


class JSONSerializer(Serializer):
    """JSON codec.

    Human-readable and the format the browser client used, so entries
    look the same in any storage inspector. Limited to JSON-compatible
    payloads.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":"), allow_nan=False).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class MsgPackSerializer(Serializer):
    """MessagePack codec.

    Compact binary format, smaller entries mean fewer quota failures.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, value: Any) -> bytes:
        return msgpack.packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False)


_SERIALIZERS: Dict[str, type] = {
    "json": JSONSerializer,
    "msgpack": MsgPackSerializer,
}


def get_serializer(format_name: str = "json") -> Serializer:
    """Get serializer by format.

    Args:
        format_name: Format name

    Returns:
        Serializer instance

    Raises:
        KeyError: If format not found
    """
    if format_name not in _SERIALIZERS:
        raise KeyError(f"Unknown serializer format: {format_name}")
    return _SERIALIZERS[format_name]()


__all__ = [
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
