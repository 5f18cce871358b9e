"""BookCache File Store - File-Based Storage Medium.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional

import msgpack

from bookcache_core.store.backend import QuotaExceededError, StorageBackend, StorageError

logger = logging.getLogger(__name__)


class FileStore(StorageBackend):
    """File-based storage medium.

    Persists items to disk so they survive restarts, the equivalent of
    durable browser storage. Each item is one file under a sharded
    directory structure, holding a msgpack record of the original key
    and the raw value.

    Features:
    - Persistent storage
    - Sharded directories (256 shards, created on demand)
    - Atomic writes
    - Optional disk quota

    Example:
        store = FileStore("/var/cache/bookcache")
        store.set_item("app_key", b"data")
        raw = store.get_item("app_key")
    """

    SHARD_COUNT = 256
    TEMP_SUFFIX = ".tmp"

    def __init__(self, base_path: str, quota_bytes: Optional[int] = None):
        """Initialize file store.

        Args:
            base_path: Base directory for item files
            quota_bytes: Maximum bytes on disk, None for unlimited
        """
        super().__init__()
        self.base_path = Path(base_path)
        self.quota_bytes = quota_bytes
        self._lock = threading.RLock()

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create {self.base_path}: {e}") from e

    def _get_path(self, key: str) -> Path:
        """Get file path for key.

        Args:
            key: Physical key

        Returns:
            File path
        """
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        shard = int(digest[:2], 16) % self.SHARD_COUNT
        return self.base_path / f"{shard:02x}" / digest

    def _read_record(self, path: Path) -> Optional[dict]:
        """Read a record file, None if it vanished or is unreadable."""
        try:
            with open(path, "rb") as f:
                record = msgpack.unpackb(f.read(), raw=False)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, msgpack.UnpackException) as e:
            logger.warning(f"Skipping unreadable cache file {path}: {e}")
            return None

        if not isinstance(record, dict) or "key" not in record or "value" not in record:
            logger.warning(f"Skipping malformed cache file {path}")
            return None
        return record

    def _iter_files(self) -> List[Path]:
        files = []
        try:
            shard_dirs = [p for p in self.base_path.iterdir() if p.is_dir()]
        except OSError as e:
            raise StorageError(f"Cannot list {self.base_path}: {e}") from e

        for shard_dir in shard_dirs:
            try:
                for file_path in shard_dir.iterdir():
                    if file_path.suffix != self.TEMP_SUFFIX:
                        files.append(file_path)
            except FileNotFoundError:
                continue
        return files

    def get_item(self, key: str) -> Optional[bytes]:
        path = self._get_path(key)

        with self._lock:
            self._stats.reads += 1
            record = self._read_record(path)

        if record is None or record["key"] != key:
            return None
        return record["value"]

    def set_item(self, key: str, value: bytes) -> None:
        path = self._get_path(key)
        temp_path = path.with_suffix(self.TEMP_SUFFIX)
        payload = msgpack.packb({"key": key, "value": bytes(value)}, use_bin_type=True)

        with self._lock:
            if self.quota_bytes is not None:
                current = self.usage()
                try:
                    current -= path.stat().st_size
                except FileNotFoundError:
                    pass
                if current + len(payload) > self.quota_bytes:
                    self._stats.quota_rejections += 1
                    raise QuotaExceededError(
                        f"Disk quota of {self.quota_bytes} bytes exceeded writing {key!r}"
                    )

            try:
                path.parent.mkdir(exist_ok=True)
                # Atomic write
                with open(temp_path, "wb") as f:
                    f.write(payload)
                os.replace(temp_path, path)
                self._stats.writes += 1
            except OSError as e:
                self._stats.record_error(str(e))
                if temp_path.exists():
                    temp_path.unlink()
                raise StorageError(f"Error writing {key!r}: {e}") from e

    def remove_item(self, key: str) -> bool:
        path = self._get_path(key)

        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                self._stats.record_error(str(e))
                raise StorageError(f"Error deleting {key!r}: {e}") from e

            self._stats.deletes += 1
            return True

    def keys(self) -> List[str]:
        """Get all keys.

        Reads every file to recover the original key, so this is linear
        in the number of items on disk.

        Returns:
            List of keys
        """
        keys = []
        for file_path in self._iter_files():
            record = self._read_record(file_path)
            if record is not None:
                keys.append(record["key"])
        return keys

    def usage(self) -> int:
        """Get total disk usage.

        Returns:
            Size in bytes
        """
        total = 0
        for file_path in self._iter_files():
            try:
                total += file_path.stat().st_size
            except FileNotFoundError:
                continue
        return total

    def __repr__(self) -> str:
        return f"FileStore(path={self.base_path})"


__all__ = ["FileStore"]
