"""BookCache Storage Backend - Abstract Storage Medium.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage medium fails to read or write."""


class QuotaExceededError(StorageError):
    """Raised when a write is rejected because the medium is full."""


@dataclass
class StorageStats:
    """Storage medium statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        errors: Number of errors
        quota_rejections: Number of writes refused for quota
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    quota_rejections: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class StorageBackend(ABC):
    """Abstract synchronous key/value medium for cache persistence.

    The interface mirrors browser Web Storage: raw values keyed by
    string, no expiry, no knowledge of prefixes. A medium may be shared
    with data that is not owned by the cache, so ``keys`` returns every
    physical key it holds.

    Implementations:
    - MemoryStore: In-process dictionary, gone when the process exits
    - FileStore: Files on disk, durable across restarts
    - RedisStore: Redis database, durable and shared between processes

    Failures are reported by raising StorageError (or QuotaExceededError
    when the medium is full). A key that disappears between calls is not
    a failure.
    """

    def __init__(self):
        """Initialize backend."""
        self._stats = StorageStats()

    @abstractmethod
    def get_item(self, key: str) -> Optional[bytes]:
        """Get raw value by key.

        Args:
            key: Physical key

        Returns:
            Stored bytes or None
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: bytes) -> None:
        """Store raw value, replacing any previous one.

        Args:
            key: Physical key
            value: Bytes to store

        Raises:
            QuotaExceededError: If the medium is full
            StorageError: On any other write failure
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """Remove a key.

        Args:
            key: Physical key

        Returns:
            True if a value was removed
        """
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Get a snapshot of all physical keys.

        Returns:
            List of keys
        """
        pass

    @abstractmethod
    def usage(self) -> int:
        """Get bytes currently used.

        Returns:
            Size in bytes
        """
        pass

    def get_stats(self) -> StorageStats:
        """Get storage statistics.

        Returns:
            StorageStats instance
        """
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()

    def health_check(self) -> bool:
        """Check storage health.

        Returns:
            True if healthy
        """
        test_key = "__health_check__"
        try:
            self.set_item(test_key, b"ok")
            result = self.get_item(test_key)
            self.remove_item(test_key)
            return result == b"ok"
        except StorageError as e:
            logger.error(f"Health check failed: {e}")
            return False

    def __contains__(self, key: str) -> bool:
        """Check if key exists."""
        return self.get_item(key) is not None

    def __len__(self) -> int:
        """Get key count."""
        return len(self.keys())

    def __iter__(self) -> Iterator[str]:
        """Iterate over keys."""
        return iter(self.keys())


__all__ = ["StorageBackend", "StorageStats", "StorageError", "QuotaExceededError"]
