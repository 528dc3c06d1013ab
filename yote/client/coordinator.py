"""
Yote — Fetch Coordinator
=========================

What:  Decides whether a fetch is needed, deduplicates in-flight requests
       and folds server envelopes into the EntityCache and ListCache.
How:   Every public call returns a FetchResult, whether or not the network
       was touched, so callers handle both paths the same way.

Concurrency (single event loop, no locks):
    At most one request per entity id and one per key path is in flight.
    A caller arriving while one is pending awaits that request and gets its
    result; no second network call is made. Waiters are shielded, so
    cancelling one caller leaves the shared request running for the others.
    Requests are never cancelled or timed out by this layer; two requests
    for the same key made one after another both land and the later
    response wins.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel, Field

from yote.client.api import ApiClient
from yote.client.cache import EntityCache, ListCache
from yote.client.paths import KeyPath, build_list_route, normalize_key_path

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


class Resource(BaseModel):
    """
    Describes how a resource looks on the wire.

    Example:
        Resource(name="tasks", item_key="task")
        → base route /api/tasks, single key "task", list key "tasks"
    """
    name: str = Field(description="Plural name used in routes and list envelopes")
    item_key: str = Field(description="Envelope key of a single entity")
    id_field: str = Field(default="_id")
    api_prefix: str = Field(default="/api")

    @property
    def list_key(self) -> str:
        return self.name

    @property
    def base_route(self) -> str:
        return f"{self.api_prefix}/{self.name}"

    def item_route(self, item_id: str) -> str:
        return f"{self.base_route}/{quote(str(item_id), safe='')}"


class FetchResult(BaseModel):
    """
    Outcome of a fetch call.

    `fetched` is False when the answer came straight from the cache.
    `item` is set for single fetches, `items` for list fetches.
    """
    success: bool
    fetched: bool
    id: Optional[str] = None
    item: Optional[Dict[str, Any]] = None
    items: Optional[List[Dict[str, Any]]] = None
    key_path: Optional[Tuple[Any, ...]] = None
    error: Optional[str] = None


class FetchCoordinator:

    def __init__(
        self,
        resource: Resource,
        api: ApiClient,
        entities: EntityCache,
        lists: ListCache,
        clock: Clock = epoch_ms,
    ):
        self.resource = resource
        self.api = api
        self.entities = entities
        self.lists = lists
        self.clock = clock
        self._pending_single: Dict[str, "asyncio.Task[FetchResult]"] = {}
        self._pending_lists: Dict[KeyPath, "asyncio.Task[FetchResult]"] = {}

    # ── In-flight bookkeeping ─────────────────────────────────────────────

    async def _run_once(
        self,
        registry: Dict[Any, "asyncio.Task[FetchResult]"],
        key: Any,
        factory: Callable[[], Awaitable[FetchResult]],
    ) -> FetchResult:
        task = registry.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            registry[key] = task

            def _forget(done: "asyncio.Task[FetchResult]") -> None:
                if registry.get(key) is done:
                    del registry[key]

            task.add_done_callback(_forget)
        else:
            logger.debug("Joining in-flight %s fetch for %s", self.resource.name, key)
        return await asyncio.shield(task)

    def is_pending(self, item_id: Optional[str] = None, key_path: Optional[KeyPath] = None) -> bool:
        if item_id is not None:
            return item_id in self._pending_single
        if key_path is not None:
            return normalize_key_path(key_path) in self._pending_lists
        return bool(self._pending_single or self._pending_lists)

    # ── Single entity ─────────────────────────────────────────────────────

    async def fetch_single_if_needed(self, item_id: str) -> FetchResult:
        item_id = str(item_id)
        if item_id in self._pending_single:
            return await self.fetch_single(item_id)
        if self.entities.should_fetch_single(item_id, self.clock()):
            return await self.fetch_single(item_id)
        return self.return_single_without_fetching(item_id)

    async def fetch_single(self, item_id: str) -> FetchResult:
        item_id = str(item_id)
        if item_id in self._pending_single and self.entities.selected.id != item_id:
            # Re-select before joining so the pending response lands on the slot
            self.entities.begin_fetch(item_id)
        return await self._run_once(self._pending_single, item_id, lambda: self._fetch_single(item_id))

    def return_single_without_fetching(self, item_id: str) -> FetchResult:
        return FetchResult(
            success=True,
            fetched=False,
            id=item_id,
            item=self.entities.get(item_id),
        )

    async def _fetch_single(self, item_id: str) -> FetchResult:
        self.entities.begin_fetch(item_id)
        try:
            json = await self.api.call_api(self.resource.item_route(item_id))
        except Exception as e:
            self.entities.receive(item_id, None, False, str(e), self.clock())
            raise

        success = bool(json.get("success"))
        entity = json.get(self.resource.item_key) if success else None
        error = None if success else json.get("message")
        self.entities.receive(item_id, entity, success, error, self.clock())
        if not success:
            logger.info("Fetching %s %s failed: %s", self.resource.item_key, item_id, error)

        return FetchResult(
            success=success,
            fetched=True,
            id=item_id,
            item=entity if entity is not None else self.entities.get(item_id),
            error=error,
        )

    # ── Lists ─────────────────────────────────────────────────────────────

    async def fetch_list_if_needed(self, *list_args: Any) -> FetchResult:
        key_path = normalize_key_path(list_args)
        if key_path in self._pending_lists:
            return await self._run_once(self._pending_lists, key_path, lambda: self._fetch_list(key_path))
        if self.lists.should_fetch_list(key_path, self.clock()):
            return await self.fetch_list(*key_path)
        return self.return_list_without_fetching(*key_path)

    async def fetch_list(self, *list_args: Any) -> FetchResult:
        key_path = normalize_key_path(list_args)
        return await self._run_once(self._pending_lists, key_path, lambda: self._fetch_list(key_path))

    def return_list_without_fetching(self, *list_args: Any) -> FetchResult:
        key_path = normalize_key_path(list_args)
        return FetchResult(
            success=True,
            fetched=False,
            items=self.lists.items_of(key_path, self.entities) or [],
            key_path=key_path,
        )

    async def _fetch_list(self, key_path: KeyPath) -> FetchResult:
        route = build_list_route(self.resource.base_route, key_path)
        self.lists.begin_fetch(key_path)
        try:
            json = await self.api.call_api(route)
        except Exception as e:
            self.lists.receive(key_path, None, False, str(e), self.clock())
            raise

        success = bool(json.get("success"))
        error = None if success else json.get("message")
        ids: List[str] = []
        if success:
            for entity in json.get(self.resource.list_key) or []:
                item_id = self.entities.put(entity)
                if item_id is not None:
                    ids.append(item_id)
        else:
            logger.info("Fetching %s list %s failed: %s", self.resource.name, key_path, error)
        self.lists.receive(key_path, ids, success, error, self.clock())

        return FetchResult(
            success=success,
            fetched=True,
            items=self.lists.items_of(key_path, self.entities) or [],
            key_path=key_path,
            error=error,
        )
