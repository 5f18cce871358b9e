"""Cache module - Core caching functionality.

This module provides the cache service, its entries and the tag index.
"""

from bookcache_core.cache.entry import CacheEntry
from bookcache_core.cache.tags import (
    TagIndex,
    TagTTLPolicy,
)
from bookcache_core.cache.cache import (
    CacheService,
    CacheConfig,
    CacheStats,
    CacheCounters,
    StorageKind,
)

__all__ = [
    "CacheEntry",
    "TagIndex",
    "TagTTLPolicy",
    "CacheService",
    "CacheConfig",
    "CacheStats",
    "CacheCounters",
    "StorageKind",
]
