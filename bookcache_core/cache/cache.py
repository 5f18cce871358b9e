"""BookCache Cache - TTL and Tag Based Cache Service.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TypeVar, Union

from bookcache_core.cache.entry import CacheEntry
from bookcache_core.cache.tags import TagIndex, TagTTLPolicy
from bookcache_core.protocol.serializer import SerializationError, get_serializer
from bookcache_core.store.backend import QuotaExceededError, StorageBackend, StorageError
from bookcache_core.store.file import FileStore
from bookcache_core.store.memory import MemoryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageKind(Enum):
    """Which medium backs the cache when none is injected."""

    DURABLE = "durable-across-restarts"
    SESSION = "cleared-at-session-end"


def _default_storage_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".cache", "bookcache")


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        default_ttl: TTL in seconds for writes without one
        prefix: Prefix owned by this cache on the storage medium
        storage: Medium to build when none is passed in
        storage_path: Directory for the durable medium
        serializer: Entry codec name ("json" or "msgpack")
        tag_ttl_policy: How tag member sets are given a lifetime
        tag_ttl: Tag set TTL in seconds for TagTTLPolicy.FIXED
        clock: Time source in seconds since the epoch
    """

    default_ttl: float = 300.0
    prefix: str = "funzone_cache_"
    storage: StorageKind = StorageKind.DURABLE
    storage_path: str = field(default_factory=_default_storage_path)
    serializer: str = "json"
    tag_ttl_policy: TagTTLPolicy = TagTTLPolicy.ENTRY
    tag_ttl: Optional[float] = None
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        if not self.prefix:
            raise ValueError("Cache prefix must not be empty")
        if self.default_ttl < 0:
            raise ValueError("default_ttl must not be negative")
        if self.tag_ttl_policy is TagTTLPolicy.FIXED and self.tag_ttl is None:
            raise ValueError("tag_ttl is required with TagTTLPolicy.FIXED")


@dataclass
class CacheStats:
    """Snapshot of what the cache holds on its medium.

    Attributes:
        total_keys: Keys under the cache prefix
        expired_keys: Keys whose entry has expired but is not purged yet
        total_size: Bytes of stored entries
        total_size_kb: total_size in kilobytes, two decimals
    """

    total_keys: int = 0
    expired_keys: int = 0
    total_size: int = 0
    total_size_kb: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "totalKeys": self.total_keys,
            "expiredKeys": self.expired_keys,
            "totalSize": self.total_size,
            "totalSizeKB": self.total_size_kb,
        }


@dataclass
class CacheCounters:
    """Operation counters since the service was built or reset."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    set_failures: int = 0
    quota_recoveries: int = 0
    deletes: int = 0
    expirations: int = 0
    corruptions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        """Reset counters."""
        for name in self.__dataclass_fields__:
            setattr(self, name, 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {name: getattr(self, name) for name in self.__dataclass_fields__}
        result["hit_rate"] = self.hit_rate
        return result


class CacheService:
    """TTL cache over a synchronous key/value medium.

    Every read re-checks the stored timestamp and TTL, since other
    processes sharing the medium may rewrite or remove entries between
    calls. Expired and undecodable entries are removed when they are
    found. No operation raises: failures are logged and reported as a
    miss, False or 0, so a caller can always fall back to live data.

    Features:
    - Per-entry TTL with lazy expiry
    - Tag index for bulk invalidation
    - Substring and regex invalidation
    - Quota recovery (sweep expired entries, retry once)
    - Prefix isolation on a shared medium

    Example:
        cache = CacheService(CacheConfig(storage=StorageKind.SESSION))

        cache.set("events_list", events, ttl=60)
        events = cache.get("events_list")

        cache.set_with_tags("event_7", event, ["events", "event_7"])
        cache.invalidate_tag("events")
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional[StorageBackend] = None,
    ):
        """Initialize cache service.

        Args:
            config: Cache configuration
            store: Storage medium, built from config.storage if omitted
        """
        self.config = config or CacheConfig()
        self._store = store if store is not None else self._build_store(self.config)
        self._serializer = get_serializer(self.config.serializer)
        self._tags = TagIndex(self)
        self.counters = CacheCounters()

        removed = self.clean_expired()
        if removed:
            logger.info(f"Removed {removed} expired entries on startup")

    @staticmethod
    def _build_store(config: CacheConfig) -> StorageBackend:
        if config.storage is StorageKind.SESSION:
            return MemoryStore()
        try:
            return FileStore(config.storage_path)
        except StorageError as e:
            logger.warning(f"Durable storage unavailable ({e}), caching for this session only")
            return MemoryStore()

    @property
    def store(self) -> StorageBackend:
        """Get the storage medium."""
        return self._store

    def now(self) -> float:
        """Get current time in seconds from the configured clock."""
        return self.config.clock()

    def _key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    def _resolve_ttl(self, ttl: Optional[float]) -> float:
        return self.config.default_ttl if ttl is None else ttl

    def _remove(self, physical_key: str) -> bool:
        try:
            self._store.remove_item(physical_key)
        except StorageError as e:
            logger.error(f"Cache delete error for key {physical_key!r}: {e}")
            return False
        return True

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the full entry if it is present and valid.

        Expired and corrupt entries are deleted and reported as absent.

        Args:
            key: Cache key

        Returns:
            CacheEntry or None
        """
        physical = self._key(key)
        try:
            raw = self._store.get_item(physical)
        except StorageError as e:
            logger.error(f"Cache get error for key {key!r}: {e}")
            return None

        if raw is None:
            return None

        try:
            entry = self._serializer.decode_entry(raw)
        except SerializationError as e:
            logger.warning(f"Removing corrupt cache entry {key!r}: {e}")
            self.counters.corruptions += 1
            self._remove(physical)
            return None

        if entry.is_expired(self.now()):
            self.counters.expirations += 1
            self._remove(physical)
            return None

        return entry

    def get(
        self,
        key: str,
        default: Any = None,
        loader: Optional[Callable[[Any], T]] = None,
    ) -> Union[T, Any]:
        """Get value from cache.

        Args:
            key: Cache key
            default: Value returned on a miss
            loader: Converts the stored payload to the caller's type

        Returns:
            Cached value or default
        """
        entry = self.get_entry(key)
        if entry is None:
            self.counters.misses += 1
            logger.debug(f"Cache miss: {key}")
            return default

        data = entry.data
        if loader is not None:
            try:
                data = loader(data)
            except (TypeError, ValueError, KeyError) as e:
                logger.warning(f"Removing cache entry {key!r} that does not load: {e}")
                self.counters.corruptions += 1
                self.counters.misses += 1
                self._remove(self._key(key))
                return default

        self.counters.hits += 1
        logger.debug(f"Cache hit: {key}")
        return data

    def set(
        self,
        key: str,
        data: Any,
        ttl: Optional[float] = None,
        dumper: Optional[Callable[[Any], Any]] = None,
    ) -> bool:
        """Set value in cache.

        A write refused for quota triggers one sweep of expired entries
        and one retry. A False result only means the value was not
        cached; it is never a reason to fail the caller's operation.

        Args:
            key: Cache key
            data: Value to cache
            ttl: TTL in seconds, default_ttl if None
            dumper: Converts a typed value to a codec payload

        Returns:
            True if stored
        """
        if dumper is not None:
            try:
                data = dumper(data)
            except (TypeError, ValueError) as e:
                logger.error(f"Cache set error for key {key!r}: {e}")
                self.counters.set_failures += 1
                return False

        return self._write(key, data, self._resolve_ttl(ttl))

    def _encode(self, data: Any, ttl: float) -> bytes:
        return self._serializer.encode_entry(CacheEntry.create(data, ttl, self.now()))

    def _write(self, key: str, data: Any, ttl: float) -> bool:
        physical = self._key(key)
        try:
            self._store.set_item(physical, self._encode(data, ttl))
        except SerializationError as e:
            logger.error(f"Cache set error for key {key!r}: {e}")
            self.counters.set_failures += 1
            return False
        except QuotaExceededError as e:
            logger.info(f"Storage full writing {key!r} ({e}), removing expired entries")
            removed = self.clean_expired()
            try:
                self._store.set_item(physical, self._encode(data, ttl))
            except StorageError as retry_error:
                logger.error(f"Cache set retry failed for key {key!r}: {retry_error}")
                self.counters.set_failures += 1
                return False
            logger.info(f"Stored {key!r} after removing {removed} expired entries")
            self.counters.quota_recoveries += 1
        except StorageError as e:
            logger.error(f"Cache set error for key {key!r}: {e}")
            self.counters.set_failures += 1
            return False

        self.counters.sets += 1
        return True

    def delete(self, key: str) -> bool:
        """Delete key from cache.

        Deleting a key that is not there succeeds: afterwards the key is
        gone either way.

        Args:
            key: Cache key

        Returns:
            False only if the medium failed
        """
        if not self._remove(self._key(key)):
            return False
        self.counters.deletes += 1
        return True

    def has(self, key: str) -> bool:
        """Check if a get for key would hit.

        Args:
            key: Cache key

        Returns:
            True if present and valid
        """
        return self.get_entry(key) is not None

    def clear(self) -> int:
        """Remove every entry under this cache's prefix.

        Keys outside the prefix are left alone.

        Returns:
            Number of entries removed
        """
        count = 0
        for key in self.keys():
            if self._remove(self._key(key)):
                count += 1
        return count

    def keys(self) -> List[str]:
        """Get a snapshot of this cache's keys, without the prefix.

        The snapshot can include entries that have expired but have not
        been purged yet; it says nothing about validity.

        Returns:
            List of keys
        """
        prefix = self.config.prefix
        try:
            physical_keys = self._store.keys()
        except StorageError as e:
            logger.error(f"Cache keys error: {e}")
            return []
        return [k[len(prefix):] for k in physical_keys if k.startswith(prefix)]

    def clean_expired(self) -> int:
        """Remove expired and undecodable entries.

        Keys that vanish during the scan are skipped.

        Returns:
            Number removed
        """
        removed = 0
        now = self.now()
        for key in self.keys():
            physical = self._key(key)
            try:
                raw = self._store.get_item(physical)
            except StorageError as e:
                logger.error(f"Cache clean error for key {key!r}: {e}")
                continue
            if raw is None:
                continue

            try:
                expired = self._serializer.decode_entry(raw).is_expired(now)
            except SerializationError:
                self.counters.corruptions += 1
                expired = True
            else:
                if expired:
                    self.counters.expirations += 1

            if expired and self._remove(physical):
                removed += 1
        return removed

    def delete_pattern(self, pattern: Union[str, re.Pattern]) -> int:
        """Delete every key matching a pattern.

        A string matches as a substring, a compiled regex by search.
        Tag sets are ordinary keys (``tag_<name>``) and are removed only
        if they match too.

        Args:
            pattern: Substring or compiled regex

        Returns:
            Number deleted
        """
        count = 0
        for key in self.keys():
            if isinstance(pattern, str):
                matches = pattern in key
            else:
                matches = pattern.search(key) is not None

            if matches and self.delete(key):
                count += 1

        logger.debug(f"Deleted {count} keys matching {pattern!r}")
        return count

    def set_with_tags(
        self,
        key: str,
        data: Any,
        tags: Iterable[str],
        ttl: Optional[float] = None,
        dumper: Optional[Callable[[Any], Any]] = None,
    ) -> bool:
        """Set value and record the key under each tag.

        Tags are only recorded once the value itself is stored.

        Args:
            key: Cache key
            data: Value to cache
            tags: Tags for later invalidation
            ttl: TTL in seconds, default_ttl if None
            dumper: Converts a typed value to a codec payload

        Returns:
            True if the value was stored
        """
        if not self.set(key, data, ttl=ttl, dumper=dumper):
            return False
        self._tags.add(key, tags, self._resolve_ttl(ttl))
        return True

    def invalidate_tag(self, tag: str) -> int:
        """Delete every key recorded under a tag.

        Args:
            tag: Tag name

        Returns:
            Number of keys deleted, 0 for an unknown tag
        """
        count = self._tags.invalidate(tag)
        self.counters.invalidations += 1
        return count

    def tag_members(self, tag: str) -> List[str]:
        """Get keys currently recorded under a tag."""
        return self._tags.members(tag)

    def get_stats(self) -> CacheStats:
        """Scan the medium and summarise this cache's entries.

        Returns:
            CacheStats instance
        """
        keys = self.keys()
        now = self.now()
        total_size = 0
        expired = 0

        for key in keys:
            try:
                raw = self._store.get_item(self._key(key))
            except StorageError as e:
                logger.error(f"Cache stats error for key {key!r}: {e}")
                continue
            if raw is None:
                continue

            total_size += len(raw)
            try:
                if self._serializer.decode_entry(raw).is_expired(now):
                    expired += 1
            except SerializationError:
                pass

        return CacheStats(
            total_keys=len(keys),
            expired_keys=expired,
            total_size=total_size,
            total_size_kb=round(total_size / 1024, 2),
        )

    def __contains__(self, key: str) -> bool:
        """Check if key is present and valid."""
        return self.has(key)

    def __len__(self) -> int:
        """Get key count, expired keys included."""
        return len(self.keys())

    def __iter__(self) -> Iterator[str]:
        """Iterate over a key snapshot."""
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"CacheService(prefix={self.config.prefix!r}, store={self._store!r})"


__all__ = ["CacheService", "CacheConfig", "CacheStats", "CacheCounters", "StorageKind"]
