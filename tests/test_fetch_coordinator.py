"""
Yote — FetchCoordinator Tests
==============================

What:  Tests for fetch-if-needed decisions, in-flight deduplication and
       response handling.
How:   ApiClient runs over httpx.MockTransport with a request counter; time
       comes from the FakeClock fixture. No server is involved.

What we test:
    ✅ Cached results come back without a request (fetched=False)
    ✅ Concurrent calls for one id / key path share one request
    ✅ Staleness boundary drives refetching
    ✅ Failures record the error and keep previously cached data
    ✅ List responses upsert entities and set ids in order
"""

import asyncio
from typing import Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio

from yote.client.api import ApiClient
from yote.client.cache import EntityCache, ListCache
from yote.client.coordinator import FetchCoordinator, Resource


class FakeServer:
    """Answers GET /api/tasks routes from a dict of canned JSON bodies."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, dict]] = {}
        self.requests: List[str] = []
        self.delay = 0.0
        self.gates: Dict[str, asyncio.Event] = {}

    def reply(self, route: str, body: dict, status_code: int = 200) -> None:
        self.routes[route] = (status_code, body)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        target = request.url.raw_path.decode()
        self.requests.append(target)
        if self.delay:
            await asyncio.sleep(self.delay)
        if target in self.gates:
            await self.gates[target].wait()
        if target in self.routes:
            status_code, body = self.routes[target]
            return httpx.Response(status_code, json=body)
        return httpx.Response(404, json={"success": False, "message": "Task not found."})


@pytest.fixture
def server():
    return FakeServer()


@pytest_asyncio.fixture
async def coordinator(server, clock):
    api = ApiClient(base_url="http://test", transport=httpx.MockTransport(server))
    yield FetchCoordinator(Resource(name="tasks", item_key="task"), api, EntityCache(), ListCache(), clock=clock)
    await api.aclose()


class TestFetchSingle:

    @pytest.mark.asyncio
    async def test_fetches_then_serves_from_cache(self, coordinator, server):
        server.reply("/api/tasks/t1", {"success": True, "task": {"_id": "t1", "name": "A"}})

        first = await coordinator.fetch_single_if_needed("t1")
        second = await coordinator.fetch_single_if_needed("t1")

        assert first.success and first.fetched
        assert first.item == {"_id": "t1", "name": "A"}
        assert second.success and not second.fetched
        assert second.item == {"_id": "t1", "name": "A"}
        assert server.requests == ["/api/tasks/t1"]

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_request(self, coordinator, server):
        server.delay = 0.01
        server.reply("/api/tasks/t1", {"success": True, "task": {"_id": "t1"}})

        results = await asyncio.gather(
            coordinator.fetch_single_if_needed("t1"),
            coordinator.fetch_single_if_needed("t1"),
            coordinator.fetch_single_if_needed("t1"),
        )

        assert len(server.requests) == 1
        assert all(result.success and result.item == {"_id": "t1"} for result in results)
        assert not coordinator.is_pending(item_id="t1")

    @pytest.mark.asyncio
    async def test_stale_boundary(self, coordinator, server, clock):
        server.reply("/api/tasks/t1", {"success": True, "task": {"_id": "t1"}})
        await coordinator.fetch_single_if_needed("t1")

        clock.advance(300000)
        assert (await coordinator.fetch_single_if_needed("t1")).fetched is False

        clock.advance(1)
        assert (await coordinator.fetch_single_if_needed("t1")).fetched is True
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_not_found_records_error_and_stops(self, coordinator, server):
        result = await coordinator.fetch_single_if_needed("missing")

        assert result.success is False
        assert result.error == "Task not found."
        assert coordinator.entities.selected.error == "Task not found."

        again = await coordinator.fetch_single_if_needed("missing")
        assert again.fetched is False
        assert again.item is None
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_cached_entity(self, coordinator, server):
        server.reply("/api/tasks/t1", {"success": True, "task": {"_id": "t1", "name": "A"}})
        await coordinator.fetch_single_if_needed("t1")

        server.reply("/api/tasks/t1", {"success": False, "message": "connection refused"}, 500)
        coordinator.entities.invalidate()
        result = await coordinator.fetch_single_if_needed("t1")

        assert result.fetched is True
        assert result.success is False
        assert result.item == {"_id": "t1", "name": "A"}
        assert coordinator.entities.get("t1") == {"_id": "t1", "name": "A"}
        assert coordinator.entities.selected.error == "connection refused"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failure(self, clock):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with ApiClient(base_url="http://test", transport=httpx.MockTransport(refuse)) as api:
            coordinator = FetchCoordinator(Resource(name="tasks", item_key="task"), api, EntityCache(), ListCache(), clock=clock)
            result = await coordinator.fetch_single("t1")

        assert result.success is False
        assert "Request failed" in result.error
        assert coordinator.entities.selected.is_fetching is False

    @pytest.mark.asyncio
    async def test_rejoining_pending_fetch_reselects_it(self, coordinator, server):
        """Asking for A again while A is still loading, after B was selected, points the slot back at A."""
        server.reply("/api/tasks/a", {"success": True, "task": {"_id": "a"}})
        server.reply("/api/tasks/b", {"success": True, "task": {"_id": "b"}})
        release_a = asyncio.Event()
        server.gates["/api/tasks/a"] = release_a

        first = asyncio.ensure_future(coordinator.fetch_single_if_needed("a"))
        while not coordinator.is_pending(item_id="a"):
            await asyncio.sleep(0)
        await coordinator.fetch_single_if_needed("b")
        assert coordinator.entities.selected.id == "b"

        second = asyncio.ensure_future(coordinator.fetch_single_if_needed("a"))
        await asyncio.sleep(0)
        assert coordinator.entities.selected.id == "a"
        release_a.set()
        results = await asyncio.gather(first, second)

        assert all(result.item == {"_id": "a"} for result in results)
        assert coordinator.entities.selected.id == "a"
        assert coordinator.entities.selected.is_fetching is False
        assert coordinator.entities.selected.last_updated is not None

        third = await coordinator.fetch_single_if_needed("a")
        assert third.fetched is False
        assert server.requests == ["/api/tasks/a", "/api/tasks/b"]

    @pytest.mark.asyncio
    async def test_ids_are_encoded(self, coordinator, server):
        await coordinator.fetch_single("a/b")
        assert server.requests == ["/api/tasks/a%2Fb"]


class TestFetchList:

    @pytest.mark.asyncio
    async def test_fetch_list_populates_both_caches(self, coordinator, server):
        server.reply("/api/tasks/by-_flow/f1", {
            "success": True,
            "tasks": [{"_id": "t2", "name": "B"}, {"_id": "t1", "name": "A"}],
        })

        result = await coordinator.fetch_list_if_needed("_flow", "f1")

        assert result.success and result.fetched
        assert result.key_path == ("_flow", "f1")
        assert [item["_id"] for item in result.items] == ["t2", "t1"]
        assert coordinator.lists.resolve(("_flow", "f1")).items == ["t2", "t1"]
        assert coordinator.entities.get("t1") == {"_id": "t1", "name": "A"}

    @pytest.mark.asyncio
    async def test_default_list_uses_base_route(self, coordinator, server):
        server.reply("/api/tasks", {"success": True, "tasks": []})
        result = await coordinator.fetch_list_if_needed()
        assert result.success
        assert result.key_path == ("all",)
        assert server.requests == ["/api/tasks"]

    @pytest.mark.asyncio
    async def test_membership_list_route(self, coordinator, server):
        server.reply("/api/tasks/by-_id-list?_id=a&_id=b&", {"success": True, "tasks": [{"_id": "a"}]})
        result = await coordinator.fetch_list_if_needed("_id", ["a", "b"])
        assert result.success
        assert coordinator.lists.resolve(("_id", ("a", "b"))).items == ["a"]

    @pytest.mark.asyncio
    async def test_cached_list_is_returned_without_fetching(self, coordinator, server):
        server.reply("/api/tasks/by-status/open", {"success": True, "tasks": [{"_id": "t1"}]})
        await coordinator.fetch_list_if_needed("status", "open")

        result = await coordinator.fetch_list_if_needed("status", "open")

        assert result.fetched is False
        assert result.items == [{"_id": "t1"}]
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_concurrent_list_calls_share_one_request(self, coordinator, server):
        server.delay = 0.01
        server.reply("/api/tasks/by-_flow/f1", {"success": True, "tasks": [{"_id": "t1"}]})

        first, second = await asyncio.gather(
            coordinator.fetch_list_if_needed("_flow", "f1"),
            coordinator.fetch_list_if_needed("_flow", "f1"),
        )

        assert len(server.requests) == 1
        assert first.items == second.items == [{"_id": "t1"}]

    @pytest.mark.asyncio
    async def test_different_paths_fetch_separately(self, coordinator, server):
        server.delay = 0.01
        server.reply("/api/tasks/by-_flow/f1", {"success": True, "tasks": []})
        server.reply("/api/tasks/by-_flow/f2", {"success": True, "tasks": []})

        await asyncio.gather(
            coordinator.fetch_list_if_needed("_flow", "f1"),
            coordinator.fetch_list_if_needed("_flow", "f2"),
        )

        assert sorted(server.requests) == ["/api/tasks/by-_flow/f1", "/api/tasks/by-_flow/f2"]

    @pytest.mark.asyncio
    async def test_invalidated_list_refetches(self, coordinator, server):
        server.reply("/api/tasks", {"success": True, "tasks": [{"_id": "t1"}]})
        await coordinator.fetch_list_if_needed()

        coordinator.lists.invalidate_list(("all",))
        server.reply("/api/tasks", {"success": True, "tasks": [{"_id": "t1"}, {"_id": "t2"}]})
        result = await coordinator.fetch_list_if_needed()

        assert result.fetched is True
        assert [item["_id"] for item in result.items] == ["t1", "t2"]
        assert coordinator.lists.resolve(("all",)).did_invalidate is False

    @pytest.mark.asyncio
    async def test_failed_refetch_keeps_items(self, coordinator, server):
        server.reply("/api/tasks", {"success": True, "tasks": [{"_id": "t1"}]})
        await coordinator.fetch_list_if_needed()

        coordinator.lists.invalidate_list(("all",))
        server.reply("/api/tasks", {"success": False, "message": "store unavailable"}, 500)
        result = await coordinator.fetch_list_if_needed()

        assert result.success is False
        assert result.error == "store unavailable"
        assert result.items == [{"_id": "t1"}]
        descriptor = coordinator.lists.resolve(("all",))
        assert descriptor.items == ["t1"]
        assert descriptor.error == "store unavailable"

    @pytest.mark.asyncio
    async def test_stale_list_refetches(self, coordinator, server, clock):
        server.reply("/api/tasks", {"success": True, "tasks": []})
        await coordinator.fetch_list_if_needed()

        clock.advance(300001)
        result = await coordinator.fetch_list_if_needed()

        assert result.fetched is True
        assert len(server.requests) == 2
