"""BookCache Redis Store - Redis Storage Medium.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import redis

from bookcache_core.store.backend import QuotaExceededError, StorageBackend, StorageError

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig:
    """Redis connection configuration.

    Attributes:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password
        socket_timeout: Socket timeout
        socket_connect_timeout: Connection timeout
        max_connections: Connection pool size
        scan_count: Batch size hint for SCAN
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    max_connections: int = 10
    scan_count: int = 100


class RedisStore(StorageBackend):
    """Redis storage medium.

    Stores raw items in a Redis database, which makes the cache durable
    and visible to every process pointed at the same database. Expiry
    stays with the cache layer; Redis keys are written without a TTL.

    A Redis server running with ``maxmemory`` and the ``noeviction``
    policy answers writes with an OOM error once full. That refusal is
    reported as QuotaExceededError so the cache can sweep and retry.

    Example:
        store = RedisStore(RedisConfig(host="redis.local", port=6379))
        store.set_item("app_key", b"data")
        raw = store.get_item("app_key")
    """

    def __init__(
        self,
        config: Optional[RedisConfig] = None,
        client: Optional[Any] = None,
    ):
        """Initialize Redis store.

        Args:
            config: Redis configuration
            client: Existing redis.Redis client to use instead of connecting
        """
        super().__init__()
        self.config = config or RedisConfig()
        self._client = client
        self._pool: Optional[redis.ConnectionPool] = None

    def _ensure_connected(self) -> Any:
        """Ensure Redis connection exists.

        Returns:
            Redis client
        """
        if self._client is not None:
            return self._client

        try:
            self._pool = redis.ConnectionPool(
                host=self.config.host,
                port=self.config.port,
                db=self.config.db,
                password=self.config.password,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                max_connections=self.config.max_connections,
                decode_responses=False,
            )
            client = redis.Redis(connection_pool=self._pool)
            client.ping()
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise StorageError(f"Redis connection failed: {e}") from e

        logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}")
        self._client = client
        return client

    def get_item(self, key: str) -> Optional[bytes]:
        client = self._ensure_connected()
        try:
            self._stats.reads += 1
            return client.get(key)
        except redis.RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis get error for {key!r}: {e}") from e

    def set_item(self, key: str, value: bytes) -> None:
        client = self._ensure_connected()
        try:
            client.set(key, value)
            self._stats.writes += 1
        except redis.ResponseError as e:
            self._stats.record_error(str(e))
            if str(e).startswith("OOM"):
                self._stats.quota_rejections += 1
                raise QuotaExceededError(f"Redis refused {key!r}: {e}") from e
            raise StorageError(f"Redis set error for {key!r}: {e}") from e
        except redis.RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis set error for {key!r}: {e}") from e

    def remove_item(self, key: str) -> bool:
        client = self._ensure_connected()
        try:
            removed = client.delete(key)
        except redis.RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis delete error for {key!r}: {e}") from e

        self._stats.deletes += 1
        return removed > 0

    def keys(self) -> List[str]:
        """List keys as text.

        Binary keys that are not UTF-8 belong to other applications on
        the same server and are skipped.
        """
        client = self._ensure_connected()
        try:
            raw_keys = list(client.scan_iter(count=self.config.scan_count))
        except redis.RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis scan error: {e}") from e

        keys = []
        for key in raw_keys:
            if isinstance(key, bytes):
                try:
                    key = key.decode("utf-8")
                except UnicodeDecodeError:
                    logger.debug(f"Skipping non-UTF-8 key {key!r}")
                    continue
            keys.append(key)
        return keys

    def usage(self) -> int:
        """Get bytes used by the stored values.

        Returns:
            Size in bytes
        """
        client = self._ensure_connected()
        total = 0
        for key in self.keys():
            try:
                total += client.strlen(key)
            except redis.RedisError as e:
                raise StorageError(f"Redis strlen error for {key!r}: {e}") from e
        return total

    def close(self) -> None:
        """Close Redis connection."""
        if self._pool:
            self._pool.disconnect()
            self._pool = None
            self._client = None

    def __repr__(self) -> str:
        return f"RedisStore(host={self.config.host}, port={self.config.port})"


__all__ = ["RedisStore", "RedisConfig"]
