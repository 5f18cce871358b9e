"""Client module - Cache-through request layer for the booking API."""

from bookcache_core.client.config import ClientConfig
from bookcache_core.client.api_client import (
    ApiClient,
    ApiError,
    CacheOptions,
    build_cache_key,
)
from bookcache_core.client.resources import (
    ResourceSpec,
    Resource,
    SupportTickets,
    BookingApi,
    RESOURCES,
    fetch_all_pages,
)

__all__ = [
    "ClientConfig",
    "ApiClient",
    "ApiError",
    "CacheOptions",
    "build_cache_key",
    "ResourceSpec",
    "Resource",
    "SupportTickets",
    "BookingApi",
    "RESOURCES",
    "fetch_all_pages",
]
