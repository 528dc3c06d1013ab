"""
Yote — Resource Stores and Cache Context
=========================================

What:  The client-side state an application passes around explicitly.

    CacheContext
    ├── "tasks" → ResourceStore(EntityCache, ListCache, FetchCoordinator)
    └── "notes" → ResourceStore(...)

How:   ResourceStore exposes every action of a resource: cached fetches,
       list utilities (filter, pagination, invalidation, add/remove ids)
       and the create/update/delete/default/schema calls that write their
       results back into the caches.

Example:
    async with ApiClient(user_id=uid) as api:
        cache = CacheContext(api)
        task = await cache.tasks.fetch_single_if_needed(task_id)
        notes = await cache.notes.fetch_list_if_needed("_task", task_id)

        created = await cache.notes.send_create({"_task": task_id, "content": "hi"})
        if created.success:
            cache.notes.invalidate_list("_task", task_id)
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from yote.client.api import ApiClient
from yote.client.cache import Entity, EntityCache, ListCache, ListDescriptor, SelectedSlot
from yote.client.coordinator import Clock, FetchCoordinator, FetchResult, Resource, epoch_ms
from yote.client.paths import normalize_key_path
from yote.config import settings

logger = logging.getLogger(__name__)

TASKS = Resource(name="tasks", item_key="task")
NOTES = Resource(name="notes", item_key="note")
DEFAULT_RESOURCES = (TASKS, NOTES)


class ResourceStore:
    """
    All cached state and actions for one resource.

    Args:
        resource:        Wire description (routes and envelope keys)
        api:             Shared ApiClient
        clock:           Epoch-ms clock; injectable for tests
        stale_after_ms:  Freshness window (defaults to settings.cache_stale_after_ms)
    """

    def __init__(
        self,
        resource: Resource,
        api: ApiClient,
        clock: Clock = epoch_ms,
        stale_after_ms: Optional[int] = None,
    ):
        if stale_after_ms is None:
            stale_after_ms = settings.cache_stale_after_ms
        self.resource = resource
        self.api = api
        self.clock = clock
        self.entities = EntityCache(id_field=resource.id_field, stale_after_ms=stale_after_ms)
        self.lists = ListCache(stale_after_ms=stale_after_ms)
        self.coordinator = FetchCoordinator(resource, api, self.entities, self.lists, clock=clock)
        self.default_obj: Optional[Entity] = None
        self.schema: Optional[Dict[str, Any]] = None

    # ── Cached fetches ────────────────────────────────────────────────────

    async def fetch_single_if_needed(self, item_id: str) -> FetchResult:
        return await self.coordinator.fetch_single_if_needed(item_id)

    async def fetch_single(self, item_id: str) -> FetchResult:
        return await self.coordinator.fetch_single(item_id)

    async def fetch_list_if_needed(self, *list_args: Any) -> FetchResult:
        return await self.coordinator.fetch_list_if_needed(*list_args)

    async def fetch_list(self, *list_args: Any) -> FetchResult:
        return await self.coordinator.fetch_list(*list_args)

    # ── Reads ─────────────────────────────────────────────────────────────

    @property
    def selected(self) -> SelectedSlot:
        return self.entities.selected

    def selected_item(self) -> Optional[Entity]:
        return self.entities.selected_item()

    def get(self, item_id: str) -> Optional[Entity]:
        return self.entities.get(item_id)

    def get_list(self, *list_args: Any) -> Optional[List[Entity]]:
        """Entities of a list in order, or None if it was never loaded."""
        return self.lists.items_of(normalize_key_path(list_args), self.entities)

    def list_descriptor(self, *list_args: Any) -> Optional[ListDescriptor]:
        return self.lists.resolve(normalize_key_path(list_args))

    # ── Local mutations ───────────────────────────────────────────────────

    def invalidate_selected(self) -> None:
        self.entities.invalidate()

    def invalidate_list(self, *list_args: Any) -> None:
        self.lists.invalidate_list(normalize_key_path(list_args))

    def set_filter(self, filter: Dict[str, Any], *list_args: Any) -> None:
        self.lists.set_filter(filter, normalize_key_path(list_args))

    def set_pagination(self, pagination: Dict[str, Any], *list_args: Any) -> None:
        self.lists.set_pagination(pagination, normalize_key_path(list_args))

    def add_to_list(self, item_id: str, *list_args: Any) -> None:
        self.lists.add_to_list(str(item_id), normalize_key_path(list_args))

    def remove_from_list(self, item_id: str, *list_args: Any) -> None:
        self.lists.remove_from_list(str(item_id), normalize_key_path(list_args))

    def add_single_to_map(self, item: Entity) -> Optional[str]:
        return self.entities.put(item)

    def set_selected(self, item: Entity) -> Optional[str]:
        return self.entities.set_selected(item, received_at=self.clock())

    # ── Server mutations ──────────────────────────────────────────────────

    async def send_create(self, data: Entity) -> FetchResult:
        json = await self.api.call_api(self.resource.base_route, "POST", data)
        success = bool(json.get("success"))
        item = json.get(self.resource.item_key) if success else None
        item_id = None
        if not success:
            logger.info("Creating %s failed: %s", self.resource.item_key, json.get("message"))
        elif item is None:
            logger.warning("Created %s but the response carried no %r", self.resource.item_key, self.resource.item_key)
        else:
            item_id = self.entities.set_selected(item, received_at=self.clock())
        return FetchResult(
            success=success,
            fetched=True,
            id=item_id,
            item=item,
            error=None if success else json.get("message"),
        )

    async def send_update(self, data: Entity, action: Optional[str] = None) -> FetchResult:
        """
        PUT `data` to its item route, or to `{item route}/{action}` for
        narrow updates such as tasks' "complete" and "status".
        """
        item_id = self.entities.id_of(data)
        if item_id is None:
            raise ValueError(f"cannot update a {self.resource.item_key} without {self.resource.id_field}")
        route = self.resource.item_route(item_id)
        if action:
            route = f"{route}/{action}"

        json = await self.api.call_api(route, "PUT", data)
        success = bool(json.get("success"))
        item = json.get(self.resource.item_key) if success else None
        error = None if success else json.get("message")
        if item is not None:
            self.entities.put(item)

        selected = self.entities.selected
        if selected.id == item_id:
            if success:
                selected.last_updated = self.clock()
                selected.did_invalidate = False
                selected.error = None
            else:
                selected.error = error
        return FetchResult(success=success, fetched=True, id=item_id, item=item, error=error)

    async def send_delete(self, item_id: str) -> FetchResult:
        item_id = str(item_id)
        json = await self.api.call_api(self.resource.item_route(item_id), "DELETE")
        success = bool(json.get("success"))
        error = None if success else json.get("message")
        if success:
            self.entities.remove(item_id)
            self.lists.remove_everywhere(item_id)
            if self.entities.selected.id == item_id:
                self.entities.selected = SelectedSlot()
        elif self.entities.selected.id == item_id:
            self.entities.selected.error = error
        return FetchResult(success=success, fetched=True, id=item_id, error=error)

    async def fetch_default(self) -> FetchResult:
        json = await self.api.call_api(f"{self.resource.base_route}/default")
        success = bool(json.get("success"))
        if success:
            self.default_obj = json.get("defaultObj")
        return FetchResult(
            success=success,
            fetched=True,
            item=self.default_obj if success else None,
            error=None if success else json.get("message"),
        )

    async def fetch_schema(self) -> FetchResult:
        json = await self.api.call_api(f"{self.resource.base_route}/schema")
        success = bool(json.get("success"))
        if success:
            self.schema = json.get("schema")
        return FetchResult(
            success=success,
            fetched=True,
            item=self.schema if success else None,
            error=None if success else json.get("message"),
        )


class CacheContext:
    """
    One ResourceStore per resource, created up front and handed to whatever
    needs cached data. Nothing here is global.
    """

    def __init__(
        self,
        api: ApiClient,
        clock: Clock = epoch_ms,
        stale_after_ms: Optional[int] = None,
        resources: Iterable[Resource] = DEFAULT_RESOURCES,
    ):
        self.api = api
        self.clock = clock
        self.stale_after_ms = stale_after_ms
        self._stores: Dict[str, ResourceStore] = {}
        for resource in resources:
            self.register(resource)

    def register(self, resource: Resource) -> ResourceStore:
        store = ResourceStore(resource, self.api, clock=self.clock, stale_after_ms=self.stale_after_ms)
        self._stores[resource.name] = store
        return store

    def __getitem__(self, name: str) -> ResourceStore:
        return self._stores[name]

    def __contains__(self, name: str) -> bool:
        return name in self._stores

    def __iter__(self) -> Iterator[str]:
        return iter(self._stores)

    @property
    def tasks(self) -> ResourceStore:
        return self._stores["tasks"]

    @property
    def notes(self) -> ResourceStore:
        return self._stores["notes"]
