"""BookCache Entry - Cache Entry with TTL.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, TypeVar

T = TypeVar("T")

ENTRY_FIELDS = ("data", "timestamp", "ttl")


def to_millis(seconds: float) -> int:
    """Convert a duration or instant in seconds to integer milliseconds."""
    return int(round(seconds * 1000))


@dataclass
class CacheEntry(Generic[T]):
    """A cached payload with the instant it was written and its lifetime.

    Both ``timestamp`` and ``ttl`` are integer milliseconds, exactly as
    they appear on the wire. An entry is valid while
    ``now - timestamp <= ttl``.

    Attributes:
        data: Cached payload
        timestamp: Write time in milliseconds since the epoch
        ttl: Time to live in milliseconds
    """

    data: T
    timestamp: int
    ttl: int

    @classmethod
    def create(cls, data: T, ttl_seconds: float, now: float) -> "CacheEntry[T]":
        """Create an entry written at ``now``.

        Args:
            data: Payload
            ttl_seconds: Time to live in seconds
            now: Current time in seconds since the epoch

        Returns:
            CacheEntry instance
        """
        return cls(data=data, timestamp=to_millis(now), ttl=to_millis(ttl_seconds))

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has outlived its TTL at ``now`` (seconds)."""
        return to_millis(now) - self.timestamp > self.ttl

    @property
    def expires_at(self) -> float:
        """Get expiration instant in seconds."""
        return (self.timestamp + self.ttl) / 1000

    def remaining_ttl(self, now: float) -> float:
        """Get remaining TTL in seconds, never negative."""
        return max(0.0, self.expires_at - now)

    def to_record(self) -> Dict[str, Any]:
        """Convert to the three-field wire record."""
        return {"data": self.data, "timestamp": self.timestamp, "ttl": self.ttl}

    def __repr__(self) -> str:
        return f"CacheEntry(timestamp={self.timestamp}, ttl={self.ttl}ms)"


__all__ = ["CacheEntry", "ENTRY_FIELDS", "to_millis"]
