"""Store module - Synchronous storage media for the cache."""

from bookcache_core.store.backend import (
    StorageBackend,
    StorageStats,
    StorageError,
    QuotaExceededError,
)
from bookcache_core.store.memory import MemoryStore
from bookcache_core.store.file import FileStore
from bookcache_core.store.redis import RedisStore, RedisConfig

__all__ = [
    "StorageBackend",
    "StorageStats",
    "StorageError",
    "QuotaExceededError",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "RedisConfig",
]
