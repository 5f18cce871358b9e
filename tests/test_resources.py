"""Tests for booking resources and their invalidation graph.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import asyncio

import httpx
import pytest

from bookcache_core.client.api_client import ApiClient, ApiError
from bookcache_core.client.config import ClientConfig
from bookcache_core.client.resources import (
    RESOURCES,
    BookingApi,
    SocialHubs,
    SupportTickets,
    fetch_all_pages,
)


class RecordingClient:
    """Stand-in for ApiClient that records calls."""

    def __init__(self, pages=None):
        self.calls = []
        self.pages = pages or {}

    async def get(self, endpoint, params=None, cache_options=None):
        self.calls.append(("GET", endpoint, params, cache_options))
        page = (params or {}).get("page")
        if page is not None and page in self.pages:
            return self.pages[page]
        return {"results": [], "next": None}

    async def post(self, endpoint, data=None, invalidate=None):
        self.calls.append(("POST", endpoint, data, invalidate))
        return {}

    async def put(self, endpoint, data=None, invalidate=None):
        self.calls.append(("PUT", endpoint, data, invalidate))
        return {}

    async def patch(self, endpoint, data=None, invalidate=None):
        self.calls.append(("PATCH", endpoint, data, invalidate))
        return {}

    async def delete(self, endpoint, invalidate=None):
        self.calls.append(("DELETE", endpoint, None, invalidate))
        return {}

    @property
    def last(self):
        return self.calls[-1]


def run(coro):
    return asyncio.run(coro)


# Every mutation and the tags it must invalidate, written out in full.
MUTATION_TAGS = {
    "customers": {
        "create": ["customers", "customers_list"],
        "update": ["customers", "customers_list", "customer_1"],
        "delete": ["customers", "customers_list", "customer_1"],
    },
    "social_hubs": {
        "create": ["social_hubs", "social_hubs_list"],
        "update": ["social_hubs", "social_hubs_list", "social_hub_1"],
        "delete": ["social_hubs", "social_hubs_list", "social_hub_1", "events"],
    },
    "events": {
        "create": ["events", "events_list", "social_hubs"],
        "update": ["events", "events_list", "event_1", "social_hubs"],
        "delete": ["events", "events_list", "event_1", "social_hubs", "reservations"],
    },
    "event_categories": {
        "create": ["event_categories", "event_categories_list"],
        "update": ["event_categories", "event_categories_list", "event_category_1"],
        "delete": ["event_categories", "event_categories_list", "event_category_1", "events"],
    },
    "reservations": {
        "create": ["reservations", "reservations_list", "events", "customers"],
        "update": ["reservations", "reservations_list", "reservation_1"],
        "delete": ["reservations", "reservations_list", "reservation_1", "events"],
    },
    "ratings": {
        "create": ["ratings", "ratings_list", "events", "social_hubs"],
        "update": ["ratings", "ratings_list", "rating_1", "events", "social_hubs"],
        "delete": ["ratings", "ratings_list", "rating_1", "events", "social_hubs"],
    },
    "comments": {
        "create": ["comments", "comments_list", "events", "social_hubs"],
        "update": ["comments", "comments_list", "comment_1", "events", "social_hubs"],
        "delete": ["comments", "comments_list", "comment_1", "events", "social_hubs"],
    },
}

READ_TTLS = {
    "customers": (300, 300),
    "social_hubs": (60, 300),
    "events": (60, 180),
    "event_categories": (600, 600),
    "reservations": (120, 120),
    "ratings": (300, 300),
    "comments": (180, 180),
}


def resource(api, name):
    return getattr(api, name)


class TestMutationTags:
    """Tests enumerating every mutation to tag mapping."""

    def test_table_covers_every_resource(self):
        assert set(MUTATION_TAGS) == set(RESOURCES)

    @pytest.mark.parametrize("name", sorted(MUTATION_TAGS))
    def test_create(self, name):
        client = RecordingClient()
        run(resource(BookingApi(client), name).create({"x": 1}))

        method, endpoint, data, tags = client.last
        assert (method, endpoint) == ("POST", RESOURCES[name].path)
        assert tags == MUTATION_TAGS[name]["create"]

    @pytest.mark.parametrize("name", sorted(MUTATION_TAGS))
    def test_update(self, name):
        client = RecordingClient()
        res = resource(BookingApi(client), name)

        run(res.update("1", {"x": 1}))
        assert client.last[0] == "PUT"
        assert client.last[1] == f"{RESOURCES[name].path}1/"
        assert client.last[3] == MUTATION_TAGS[name]["update"]

        run(res.partial_update("1", {"x": 1}))
        assert client.last[0] == "PATCH"
        assert client.last[3] == MUTATION_TAGS[name]["update"]

    @pytest.mark.parametrize("name", sorted(MUTATION_TAGS))
    def test_delete(self, name):
        client = RecordingClient()
        run(resource(BookingApi(client), name).delete("1"))

        method, endpoint, _, tags = client.last
        assert (method, endpoint) == ("DELETE", f"{RESOURCES[name].path}1/")
        assert tags == MUTATION_TAGS[name]["delete"]

    @pytest.mark.parametrize("name", sorted(MUTATION_TAGS))
    def test_every_mutation_hits_resource_tag(self, name):
        for tags in MUTATION_TAGS[name].values():
            assert name in tags

    def test_favorites(self):
        client = RecordingClient()
        api = BookingApi(client)
        expected = ["customers", "customer_3", "social_hubs", "social_hub_9"]

        run(api.customers.add_favorite("3", "9"))
        assert client.last[1] == "/customers/add-favorite/"
        assert client.last[2]["message"] == "Added to favorites"
        assert client.last[3] == expected

        run(api.customers.remove_favorite("3", "9"))
        assert client.last[1] == "/customers/remove-favorite/"
        assert client.last[3] == expected

    def test_support_tickets(self):
        client = RecordingClient()
        api = BookingApi(client)
        ticket_tags = ["support", "support_ticket_5", "support_tickets"]

        run(api.support.create({"subject": "help"}))
        assert client.last[1:] == ("/support/tickets/", {"subject": "help"}, ["support", "support_tickets"])

        run(api.support.add_comment("5", "still broken"))
        assert client.last[1] == "/support/tickets/5/add-comment/"
        assert client.last[3] == ticket_tags

        run(api.support.update_status("5", "closed"))
        assert client.last[0] == "PATCH"
        assert client.last[3] == ticket_tags


class TestReads:
    """Tests for read TTLs and tags."""

    @pytest.mark.parametrize("name", sorted(READ_TTLS))
    def test_list(self, name):
        client = RecordingClient()
        run(resource(BookingApi(client), name).list({"page": 1}))

        _, endpoint, params, options = client.last
        assert endpoint == RESOURCES[name].path
        assert params == {"page": 1}
        assert options.ttl == READ_TTLS[name][0]
        assert options.tags == [name, f"{name}_list"]

    @pytest.mark.parametrize("name", sorted(READ_TTLS))
    def test_detail(self, name):
        client = RecordingClient()
        run(resource(BookingApi(client), name).get("1"))

        _, endpoint, _, options = client.last
        assert endpoint == f"{RESOURCES[name].path}1/"
        assert options.ttl == READ_TTLS[name][1]
        assert options.tags == [name, RESOURCES[name].item_tag("1")]

    def test_list_ttl_override(self):
        client = RecordingClient()
        run(BookingApi(client).events.list(ttl=5))
        assert client.last[3].ttl == 5

    def test_social_hub_with_related(self):
        client = RecordingClient()
        run(BookingApi(client).social_hubs.get_with_related("4"))

        _, endpoint, _, options = client.last
        assert endpoint == "/social-hubs/4/details_with_related/"
        assert options.ttl == SocialHubs.RELATED_TTL == 180
        assert options.tags == ["social_hubs", "social_hub_4", "events", "ratings", "comments"]

    def test_comment_replies_uncached(self):
        client = RecordingClient()
        run(BookingApi(client).comments.get_replies("8"))

        _, endpoint, params, options = client.last
        assert endpoint == "/comments/"
        assert params == {"parent_comment": "8"}
        assert not options.enabled

    def test_support_reads(self):
        client = RecordingClient()
        api = BookingApi(client)

        run(api.support.list())
        assert client.last[3].tags == ["support", "support_tickets"]
        assert client.last[3].ttl == SupportTickets.TTL

        run(api.support.get("5"))
        assert client.last[1] == "/support/tickets/5/"
        assert client.last[3].tags == ["support", "support_ticket_5"]

        run(api.support.stats())
        assert client.last[1] == "/support/tickets/stats/"
        assert client.last[3].tags == ["support", "support_stats"]
        assert client.last[3].ttl == 60


class TestPagination:
    """Tests for collecting paginated lists."""

    def test_fetch_all_pages(self):
        pages = {
            1: {"results": [1, 2], "next": "?page=2"},
            2: {"results": [3], "next": "?page=3"},
            3: {"results": [4], "next": None},
        }
        seen = []

        async def list_fn(params):
            seen.append(params)
            return pages[params["page"]]

        assert run(fetch_all_pages(list_fn, {"search": "jazz"})) == [1, 2, 3, 4]
        assert seen[0] == {"search": "jazz", "page": 1}
        assert len(seen) == 3

    def test_errors_propagate(self):
        async def list_fn(params):
            raise ApiError("boom", status=500)

        with pytest.raises(ApiError):
            run(fetch_all_pages(list_fn))

    def test_get_all_events_force_refresh(self):
        client = RecordingClient(pages={1: {"results": ["a"], "next": None}})
        api = BookingApi(client)

        assert run(api.get_all_events()) == ["a"]
        assert client.last[3].enabled

        assert run(api.get_all_events(force_refresh=True)) == ["a"]
        assert not client.last[3].enabled

    def test_get_all_event_categories(self):
        client = RecordingClient(pages={1: {"results": ["music"], "next": None}})
        assert run(BookingApi(client).get_all_event_categories()) == ["music"]


class TestInvalidationEndToEnd:
    """Tests running resources against a real cache and mock transport."""

    def test_rating_invalidates_event_reads(self, cache):
        """Test rating an event drops cached event lists and venue details."""
        requests = []

        def handler(request):
            requests.append((request.method, request.url.path))
            if request.method == "POST":
                return httpx.Response(201, json={"id": 1})
            return httpx.Response(200, json={"results": [], "next": None})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        api = BookingApi(ApiClient(cache, ClientConfig(base_url="http://api.test"), http_client=http_client))

        async def scenario():
            await api.events.list({"page": 1})
            await api.social_hubs.get_with_related("4")
            await api.reservations.list()
            await api.ratings.create({"event": 7, "score": 5})
            await api.events.list({"page": 1})
            await api.social_hubs.get_with_related("4")
            await api.reservations.list()

        run(scenario())
        assert requests.count(("GET", "/events/")) == 2
        assert requests.count(("GET", "/social-hubs/4/details_with_related/")) == 2
        assert requests.count(("GET", "/reservations/")) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
