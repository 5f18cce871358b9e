"""BookCache - TTL and Tag Cache for the Booking API Client.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A client-side cache between the booking request layer and the network:
- Per-entry TTL with lazy expiry and self-healing on corrupt entries
- Tag index for invalidating every read a write may have made stale
- Substring/regex invalidation and storage statistics
- Quota recovery by sweeping expired entries and retrying once
- Prefix isolation on storage media shared with other data

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        BookCache System                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │  ApiClient  │  │ BookingApi  │  │  Resource   │   REQUEST   │
    │  │ cache-thru  │  │  resources  │  │  tag graph  │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘             │
    │         │                │                │                     │
    │  ┌──────┴────────────────┴────────────────┴──────┐             │
    │  │              CacheService                      │             │
    │  │   ┌───────┐  ┌──────────┐  ┌───────────────┐  │   CACHE     │
    │  │   │ Entry │  │ TagIndex │  │ pattern/stats │  │   LAYER     │
    │  │   └───────┘  └──────────┘  └───────────────┘  │             │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │  JSON / MessagePack entries           │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │              Storage Media                     │             │
    │  │   ┌────────┐  ┌────────┐  ┌────────┐         │   STORAGE   │
    │  │   │ Memory │  │  File  │  │ Redis  │         │   LAYER     │
    │  │   └────────┘  └────────┘  └────────┘         │             │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from bookcache_core import CacheService, CacheConfig, StorageKind

    cache = CacheService(CacheConfig(default_ttl=300, storage=StorageKind.DURABLE))
    cache.set_with_tags("events_page_1", events, ["events", "events_list"], ttl=60)
    events = cache.get("events_page_1")
    cache.invalidate_tag("events")

    # Request layer
    from bookcache_core import ApiClient, BookingApi, ClientConfig

    api = BookingApi(ApiClient(cache, ClientConfig.from_env()))
    hubs = await api.social_hubs.list()
    await api.events.create({"title": "Quiz night"})  # invalidates events, social_hubs
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from bookcache_core.cache.entry import CacheEntry
from bookcache_core.cache.tags import TagIndex, TagTTLPolicy
from bookcache_core.cache.cache import (
    CacheService,
    CacheConfig,
    CacheStats,
    CacheCounters,
    StorageKind,
)
from bookcache_core.store.backend import (
    StorageBackend,
    StorageStats,
    StorageError,
    QuotaExceededError,
)
from bookcache_core.store.memory import MemoryStore
from bookcache_core.store.file import FileStore
from bookcache_core.store.redis import RedisStore, RedisConfig
from bookcache_core.protocol.serializer import (
    Serializer,
    SerializationError,
    JSONSerializer,
    MsgPackSerializer,
)
from bookcache_core.client.config import ClientConfig
from bookcache_core.client.api_client import (
    ApiClient,
    ApiError,
    CacheOptions,
    build_cache_key,
)
from bookcache_core.client.resources import (
    BookingApi,
    Resource,
    ResourceSpec,
    RESOURCES,
)

__all__ = [
    # Cache
    "CacheService",
    "CacheConfig",
    "CacheStats",
    "CacheCounters",
    "CacheEntry",
    "StorageKind",
    "TagIndex",
    "TagTTLPolicy",
    # Storage
    "StorageBackend",
    "StorageStats",
    "StorageError",
    "QuotaExceededError",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "RedisConfig",
    # Protocol
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "MsgPackSerializer",
    # Client
    "ClientConfig",
    "ApiClient",
    "ApiError",
    "CacheOptions",
    "build_cache_key",
    "BookingApi",
    "Resource",
    "ResourceSpec",
    "RESOURCES",
]
