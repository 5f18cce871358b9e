"""BookCache Memory Store - In-Memory Storage Medium.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from bookcache_core.store.backend import QuotaExceededError, StorageBackend

logger = logging.getLogger(__name__)


class MemoryStore(StorageBackend):
    """In-memory storage medium.

    Holds data for the lifetime of the process, the equivalent of
    session-scoped browser storage. An optional byte quota makes writes
    fail the same way a full browser store does.

    Features:
    - O(1) get/set/remove operations
    - Thread-safe with RLock
    - Quota accounting over key and value bytes

    Example:
        store = MemoryStore(quota_bytes=5 * 1024 * 1024)
        store.set_item("app_key", b"data")
        raw = store.get_item("app_key")
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        """Initialize memory store.

        Args:
            quota_bytes: Maximum bytes held, None for unlimited
        """
        super().__init__()
        self.quota_bytes = quota_bytes
        self._data: Dict[str, bytes] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _item_size(key: str, value: bytes) -> int:
        return len(key.encode("utf-8")) + len(value)

    def get_item(self, key: str) -> Optional[bytes]:
        with self._lock:
            self._stats.reads += 1
            return self._data.get(key)

    def set_item(self, key: str, value: bytes) -> None:
        with self._lock:
            if self.quota_bytes is not None:
                current = self.usage()
                previous = self._data.get(key)
                if previous is not None:
                    current -= self._item_size(key, previous)
                if current + self._item_size(key, value) > self.quota_bytes:
                    self._stats.quota_rejections += 1
                    raise QuotaExceededError(
                        f"Memory quota of {self.quota_bytes} bytes exceeded writing {key!r}"
                    )

            self._data[key] = bytes(value)
            self._stats.writes += 1

    def remove_item(self, key: str) -> bool:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._stats.deletes += 1
                return True
            return False

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def usage(self) -> int:
        """Get total bytes held.

        Returns:
            Size in bytes
        """
        with self._lock:
            return sum(self._item_size(k, v) for k, v in self._data.items())

    def __repr__(self) -> str:
        return f"MemoryStore(entries={len(self._data)}, quota={self.quota_bytes})"


__all__ = ["MemoryStore"]
