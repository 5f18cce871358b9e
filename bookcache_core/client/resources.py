"""BookCache Resources - Booking API Resources and Their Cache Tags.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Each resource declares which tags its reads are cached under and which
tags each of its writes invalidates. The mapping is maintained by hand:
a write that leaves out a tag some read depends on does not fail, it
leaves that read stale until its TTL runs out. tests/test_resources.py
enumerates every mapping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from bookcache_core.client.api_client import ApiClient, CacheOptions

logger = logging.getLogger(__name__)

MINUTE = 60.0


@dataclass(frozen=True)
class ResourceSpec:
    """Declaration of a REST resource and its cache tags.

    Attributes:
        name: Plural tag name, e.g. "events"
        path: Collection endpoint, e.g. "/events/"
        singular: Per-item tag stem, e.g. "event" for "event_<id>"
        list_ttl: Seconds list reads stay cached
        detail_ttl: Seconds item reads stay cached
        create_also: Extra tags a create invalidates
        update_also: Extra tags an update invalidates
        delete_also: Extra tags a delete invalidates
    """

    name: str
    path: str
    singular: str
    list_ttl: float
    detail_ttl: float
    create_also: Tuple[str, ...] = ()
    update_also: Tuple[str, ...] = ()
    delete_also: Tuple[str, ...] = ()

    @property
    def list_tag(self) -> str:
        return f"{self.name}_list"

    def item_tag(self, item_id: str) -> str:
        return f"{self.singular}_{item_id}"

    def item_path(self, item_id: str) -> str:
        return f"{self.path}{item_id}/"

    def list_tags(self) -> List[str]:
        return [self.name, self.list_tag]

    def detail_tags(self, item_id: str) -> List[str]:
        return [self.name, self.item_tag(item_id)]

    def create_tags(self) -> List[str]:
        return [self.name, self.list_tag, *self.create_also]

    def update_tags(self, item_id: str) -> List[str]:
        return [self.name, self.list_tag, self.item_tag(item_id), *self.update_also]

    def delete_tags(self, item_id: str) -> List[str]:
        return [self.name, self.list_tag, self.item_tag(item_id), *self.delete_also]


CUSTOMERS = ResourceSpec("customers", "/customers/", "customer", 5 * MINUTE, 5 * MINUTE)
SOCIAL_HUBS = ResourceSpec(
    "social_hubs", "/social-hubs/", "social_hub", 1 * MINUTE, 5 * MINUTE,
    delete_also=("events",),
)
EVENTS = ResourceSpec(
    "events", "/events/", "event", 1 * MINUTE, 3 * MINUTE,
    create_also=("social_hubs",),
    update_also=("social_hubs",),
    delete_also=("social_hubs", "reservations"),
)
EVENT_CATEGORIES = ResourceSpec(
    "event_categories", "/event-categories/", "event_category", 10 * MINUTE, 10 * MINUTE,
    delete_also=("events",),
)
RESERVATIONS = ResourceSpec(
    "reservations", "/reservations/", "reservation", 2 * MINUTE, 2 * MINUTE,
    create_also=("events", "customers"),
    delete_also=("events",),
)
RATINGS = ResourceSpec(
    "ratings", "/ratings/", "rating", 5 * MINUTE, 5 * MINUTE,
    create_also=("events", "social_hubs"),
    update_also=("events", "social_hubs"),
    delete_also=("events", "social_hubs"),
)
COMMENTS = ResourceSpec(
    "comments", "/comments/", "comment", 3 * MINUTE, 3 * MINUTE,
    create_also=("events", "social_hubs"),
    update_also=("events", "social_hubs"),
    delete_also=("events", "social_hubs"),
)

RESOURCES: Dict[str, ResourceSpec] = {
    spec.name: spec
    for spec in (CUSTOMERS, SOCIAL_HUBS, EVENTS, EVENT_CATEGORIES, RESERVATIONS, RATINGS, COMMENTS)
}


class Resource:
    """CRUD calls for one resource, cached and invalidated per its declaration."""

    def __init__(self, client: ApiClient, spec: ResourceSpec):
        self._client = client
        self.spec = spec

    async def list(
        self,
        params: Optional[Mapping[str, Any]] = None,
        ttl: Optional[float] = None,
        enabled: bool = True,
    ) -> Any:
        """List items; ``enabled=False`` skips the cache for a fresh read."""
        options = CacheOptions(
            enabled=enabled,
            ttl=self.spec.list_ttl if ttl is None else ttl,
            tags=self.spec.list_tags(),
        )
        return await self._client.get(self.spec.path, params, options)

    async def get(self, item_id: str) -> Any:
        options = CacheOptions(ttl=self.spec.detail_ttl, tags=self.spec.detail_tags(item_id))
        return await self._client.get(self.spec.item_path(item_id), None, options)

    async def create(self, data: Mapping[str, Any]) -> Any:
        return await self._client.post(self.spec.path, data, self.spec.create_tags())

    async def update(self, item_id: str, data: Mapping[str, Any]) -> Any:
        return await self._client.put(self.spec.item_path(item_id), data, self.spec.update_tags(item_id))

    async def partial_update(self, item_id: str, data: Mapping[str, Any]) -> Any:
        return await self._client.patch(self.spec.item_path(item_id), data, self.spec.update_tags(item_id))

    async def delete(self, item_id: str) -> Any:
        return await self._client.delete(self.spec.item_path(item_id), self.spec.delete_tags(item_id))

    def __repr__(self) -> str:
        return f"Resource({self.spec.name!r})"


class Customers(Resource):
    """Customers plus their favorite venues."""

    def __init__(self, client: ApiClient):
        super().__init__(client, CUSTOMERS)

    @staticmethod
    def favorite_tags(customer_id: str, social_hub_id: str) -> List[str]:
        return [
            CUSTOMERS.name,
            CUSTOMERS.item_tag(customer_id),
            SOCIAL_HUBS.name,
            SOCIAL_HUBS.item_tag(social_hub_id),
        ]

    async def add_favorite(self, customer_id: str, social_hub_id: str) -> Any:
        payload = {
            "customer_id": customer_id,
            "social_hub_id": social_hub_id,
            "message": "Added to favorites",
        }
        return await self._client.post(
            "/customers/add-favorite/", payload, self.favorite_tags(customer_id, social_hub_id)
        )

    async def remove_favorite(self, customer_id: str, social_hub_id: str) -> Any:
        payload = {
            "customer_id": customer_id,
            "social_hub_id": social_hub_id,
            "message": "Removed from favorites",
        }
        return await self._client.post(
            "/customers/remove-favorite/", payload, self.favorite_tags(customer_id, social_hub_id)
        )


class SocialHubs(Resource):
    """Venues, with a batched details read."""

    RELATED_TTL = 3 * MINUTE

    def __init__(self, client: ApiClient):
        super().__init__(client, SOCIAL_HUBS)

    @staticmethod
    def related_tags(item_id: str) -> List[str]:
        return [SOCIAL_HUBS.name, SOCIAL_HUBS.item_tag(item_id), EVENTS.name, RATINGS.name, COMMENTS.name]

    async def get_with_related(self, item_id: str) -> Any:
        """Venue with its events, ratings and comments in one read."""
        options = CacheOptions(ttl=self.RELATED_TTL, tags=self.related_tags(item_id))
        return await self._client.get(f"{SOCIAL_HUBS.item_path(item_id)}details_with_related/", None, options)


class Comments(Resource):
    def __init__(self, client: ApiClient):
        super().__init__(client, COMMENTS)

    async def get_replies(self, comment_id: str) -> Any:
        """Replies are always read fresh."""
        options = CacheOptions(enabled=False)
        return await self._client.get(COMMENTS.path, {"parent_comment": comment_id}, options)


class SupportTickets:
    """Support tickets, tagged under the shared "support" tag."""

    PATH = "/support/tickets/"
    TTL = 2 * MINUTE
    STATS_TTL = 1 * MINUTE

    def __init__(self, client: ApiClient):
        self._client = client

    @staticmethod
    def ticket_tag(ticket_id: str) -> str:
        return f"support_ticket_{ticket_id}"

    @classmethod
    def comment_tags(cls, ticket_id: str) -> List[str]:
        return ["support", cls.ticket_tag(ticket_id), "support_tickets"]

    async def list(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        options = CacheOptions(ttl=self.TTL, tags=["support", "support_tickets"])
        return await self._client.get(self.PATH, params, options)

    async def get(self, ticket_id: str) -> Any:
        options = CacheOptions(ttl=self.TTL, tags=["support", self.ticket_tag(ticket_id)])
        return await self._client.get(f"{self.PATH}{ticket_id}/", None, options)

    async def stats(self) -> Any:
        options = CacheOptions(ttl=self.STATS_TTL, tags=["support", "support_stats"])
        return await self._client.get(f"{self.PATH}stats/", None, options)

    async def create(self, data: Mapping[str, Any]) -> Any:
        return await self._client.post(self.PATH, data, ["support", "support_tickets"])

    async def add_comment(self, ticket_id: str, content: str) -> Any:
        return await self._client.post(
            f"{self.PATH}{ticket_id}/add-comment/", {"content": content}, self.comment_tags(ticket_id)
        )

    async def update_status(self, ticket_id: str, status: str) -> Any:
        return await self._client.patch(
            f"{self.PATH}{ticket_id}/update-status/", {"status": status}, self.comment_tags(ticket_id)
        )


async def fetch_all_pages(
    list_fn: Callable[[Dict[str, Any]], Awaitable[Mapping[str, Any]]],
    params: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """Collect ``results`` from every page of a paginated list.

    Follows pages while the response carries a ``next`` link.

    Args:
        list_fn: Coroutine function taking query parameters
        params: Base query parameters

    Returns:
        All results in page order
    """
    results: List[Any] = []
    page = 1
    while True:
        response = await list_fn({**(params or {}), "page": page})
        results.extend(response.get("results", []))
        if not response.get("next"):
            break
        page += 1

    logger.debug(f"Fetched {len(results)} results over {page} pages")
    return results


class BookingApi:
    """All booking API resources over one cache-backed client.

    Example:
        api = BookingApi(ApiClient(cache, ClientConfig.from_env()))
        hubs = await api.social_hubs.list({"search": "cafe"})
        await api.reservations.create({"event": 7, "customer": 3})
    """

    def __init__(self, client: ApiClient):
        self.client = client
        self.customers = Customers(client)
        self.social_hubs = SocialHubs(client)
        self.events = Resource(client, EVENTS)
        self.event_categories = Resource(client, EVENT_CATEGORIES)
        self.reservations = Resource(client, RESERVATIONS)
        self.ratings = Resource(client, RATINGS)
        self.comments = Comments(client)
        self.support = SupportTickets(client)

    async def get_all_events(
        self,
        params: Optional[Mapping[str, Any]] = None,
        force_refresh: bool = False,
    ) -> List[Any]:
        """Every event across pages; ``force_refresh`` bypasses the cache."""

        async def list_page(page_params: Dict[str, Any]) -> Any:
            return await self.events.list(page_params, enabled=not force_refresh)

        return await fetch_all_pages(list_page, params)

    async def get_all_social_hubs(
        self,
        params: Optional[Mapping[str, Any]] = None,
        force_refresh: bool = False,
    ) -> List[Any]:
        """Every venue across pages; ``force_refresh`` bypasses the cache."""

        async def list_page(page_params: Dict[str, Any]) -> Any:
            return await self.social_hubs.list(page_params, enabled=not force_refresh)

        return await fetch_all_pages(list_page, params)

    async def get_all_event_categories(self, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        return await fetch_all_pages(self.event_categories.list, params)


__all__ = [
    "ResourceSpec",
    "Resource",
    "Customers",
    "SocialHubs",
    "Comments",
    "SupportTickets",
    "BookingApi",
    "RESOURCES",
    "fetch_all_pages",
]
