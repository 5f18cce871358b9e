"""BookCache API Client - Cache-Through HTTP Request Layer.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import httpx

from bookcache_core.cache.cache import CacheService, CacheStats
from bookcache_core.client.config import ClientConfig

logger = logging.getLogger(__name__)

_MISS = object()


@dataclass
class CacheOptions:
    """Per-call caching options for reads.

    Attributes:
        enabled: Serve from and store into the cache
        ttl: TTL override in seconds
        tags: Tags the cached response is recorded under
        key: Explicit cache key instead of one built from the request
    """

    enabled: bool = True
    ttl: Optional[float] = None
    tags: List[str] = field(default_factory=list)
    key: Optional[str] = None


class ApiError(Exception):
    """Raised when the API answers with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_cache_key(
    endpoint: str,
    params: Optional[Mapping[str, Any]] = None,
    custom_key: Optional[str] = None,
) -> str:
    """Build the cache key for a read.

    Parameters are folded in sorted by name, so the same logical request
    always lands on the same key whatever order its parameters came in.

    Args:
        endpoint: API endpoint, e.g. "/events/"
        params: Query parameters
        custom_key: Key to use as is

    Returns:
        Cache key, e.g. "events__page_2"
    """
    if custom_key:
        return custom_key

    base_key = re.sub(r"^_", "", endpoint.replace("/", "_"))
    if params:
        params_str = "_".join(f"{name}_{_stringify(params[name])}" for name in sorted(params))
        return f"{base_key}_{params_str}"
    return base_key


def _error_details(response: httpx.Response) -> Tuple[str, Any]:
    """Pull a readable message out of an error response."""
    fallback = f"HTTP error! status: {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or fallback, None

    if not isinstance(data, dict):
        return fallback, data

    for name in ("detail", "error", "message"):
        if data.get(name):
            return str(data[name]), data

    non_field = data.get("non_field_errors")
    if isinstance(non_field, list) and non_field:
        return ", ".join(str(e) for e in non_field), data

    field_errors = "; ".join(
        f"{name}: {', '.join(str(e) for e in errors) if isinstance(errors, list) else errors}"
        for name, errors in data.items()
    )
    return field_errors or fallback, data


class ApiClient:
    """Async client for the booking API with a cache in front of reads.

    Reads check the cache first and store what they fetch. Writes are
    never cached; once the server accepts one, the client invalidates
    the tags the caller names, or when none are named, every key built
    from the same endpoint. A failed write invalidates nothing.

    There is no request coalescing: two reads of the same uncached key
    started together both go to the network.

    Example:
        cache = CacheService(CacheConfig(storage=StorageKind.SESSION))
        async with ApiClient(cache, ClientConfig.from_env()) as client:
            events = await client.get("/events/", {"page": 1},
                                      CacheOptions(ttl=60, tags=["events"]))
            await client.post("/events/", new_event, invalidate=["events"])
    """

    def __init__(
        self,
        cache: CacheService,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        """Initialize API client.

        Args:
            cache: Cache service shared with other consumers
            config: Client configuration
            http_client: HTTP client to use instead of creating one
            token_provider: Returns the current access token, if any
        """
        self.cache = cache
        self.config = config or ClientConfig()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._token_provider = token_provider

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
            )
        return self._http_client

    def _url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        client = await self._get_http_client()
        url = self._url(endpoint)
        logger.debug(f"API {method} request: {url}")

        response = await client.request(method, url, headers=self._headers(), **kwargs)
        if not response.is_success:
            message, data = _error_details(response)
            logger.error(f"API {method} {url} failed with {response.status_code}: {message}")
            raise ApiError(message, status=response.status_code, data=data)
        return response

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Failed to parse response as JSON: {e}",
                status=response.status_code,
            ) from e

    def _invalidate_after(self, endpoint: str, tags: Optional[List[str]]) -> None:
        if tags:
            for tag in tags:
                self.cache.invalidate_tag(tag)
        else:
            self.cache.delete_pattern(build_cache_key(endpoint))

    async def get(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        cache_options: Optional[CacheOptions] = None,
    ) -> Any:
        """GET a resource, through the cache unless disabled.

        Args:
            endpoint: API endpoint
            params: Query parameters, None values are not sent
            cache_options: Caching options for this call

        Returns:
            Decoded JSON body
        """
        options = cache_options or CacheOptions()
        cache_key = build_cache_key(endpoint, params, options.key)

        if options.enabled:
            cached = self.cache.get(cache_key, default=_MISS)
            if cached is not _MISS:
                return cached

        query = {k: _stringify(v) for k, v in (params or {}).items() if v is not None}
        response = await self._send("GET", endpoint, params=query)
        data = self._parse_json(response)

        if options.enabled:
            if options.tags:
                self.cache.set_with_tags(cache_key, data, options.tags, ttl=options.ttl)
            else:
                self.cache.set(cache_key, data, ttl=options.ttl)

        return data

    async def post(self, endpoint: str, data: Any = None, invalidate: Optional[List[str]] = None) -> Any:
        """POST and invalidate on success."""
        response = await self._send("POST", endpoint, json=data)
        self._invalidate_after(endpoint, invalidate)
        return self._parse_json(response)

    async def put(self, endpoint: str, data: Any = None, invalidate: Optional[List[str]] = None) -> Any:
        """PUT and invalidate on success."""
        response = await self._send("PUT", endpoint, json=data)
        self._invalidate_after(endpoint, invalidate)
        return self._parse_json(response)

    async def patch(self, endpoint: str, data: Any = None, invalidate: Optional[List[str]] = None) -> Any:
        """PATCH and invalidate on success."""
        response = await self._send("PATCH", endpoint, json=data)
        self._invalidate_after(endpoint, invalidate)
        return self._parse_json(response)

    async def delete(self, endpoint: str, invalidate: Optional[List[str]] = None) -> Union[Any, str]:
        """DELETE and invalidate on success.

        The body may be empty or plain text; an empty body decodes to {}.
        """
        response = await self._send("DELETE", endpoint)
        self._invalidate_after(endpoint, invalidate)

        text = response.text
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError:
            return text

    def invalidate_tag(self, tag: str) -> int:
        """Invalidate cached reads by tag."""
        return self.cache.invalidate_tag(tag)

    def invalidate_pattern(self, pattern: Union[str, re.Pattern]) -> int:
        """Invalidate cached reads by key pattern."""
        return self.cache.delete_pattern(pattern)

    def clear_cache(self) -> int:
        """Clear all cached reads."""
        return self.cache.clear()

    def cache_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self.cache.get_stats()

    async def aclose(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"ApiClient(base_url={self.config.base_url!r})"


__all__ = ["ApiClient", "ApiError", "CacheOptions", "build_cache_key"]
