"""
Yote — Client Entity and List Caches
=====================================

What:  The two halves of a resource's client-side state.

    EntityCache:  by_id map (id → entity) plus one "selected" slot carrying
                  fetch metadata for the entity currently being viewed.
    ListCache:    a tree of list descriptors addressed by key paths of any
                  depth; each descriptor holds an ordered list of ids that
                  point into the EntityCache.

How:   Both expose a should-fetch decision and the request/receive
       transitions the FetchCoordinator drives. Neither does any I/O.

Staleness:
    An entry is stale when now - last_updated > stale_after_ms (exclusive:
    exactly 300000 ms old is still fresh) or when it was invalidated. An
    entry that has never recorded last_updated is never stale by age.

Errors never wipe data: a failed fetch records `error` on the slot or
descriptor and leaves whatever was cached before in place.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from yote.client.paths import DEFAULT_KEY_PATH, KeyPath, KeySegment

logger = logging.getLogger(__name__)

STALE_AFTER_MS = 1000 * 60 * 5

Entity = Dict[str, Any]


def _is_stale(last_updated: Optional[int], now: int, stale_after_ms: int) -> bool:
    if last_updated is None:
        return False
    return now - last_updated > stale_after_ms


# ══════════════════════════════════════════════════════════════════════════
# Entity Cache
# ══════════════════════════════════════════════════════════════════════════


class SelectedSlot(BaseModel):
    """Fetch metadata for the single selected entity of a resource."""
    id: Optional[str] = None
    is_fetching: bool = False
    did_invalidate: bool = False
    last_updated: Optional[int] = Field(default=None, description="Epoch ms of the last response")
    error: Optional[str] = None


class EntityCache:
    """
    Entities of one resource keyed by id, plus the selected slot.

    Args:
        id_field:        Key holding an entity's id ("_id")
        stale_after_ms:  Freshness window for the selected slot
    """

    def __init__(self, id_field: str = "_id", stale_after_ms: int = STALE_AFTER_MS):
        self.id_field = id_field
        self.stale_after_ms = stale_after_ms
        self.by_id: Dict[str, Entity] = {}
        self.selected = SelectedSlot()

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.by_id

    def __len__(self) -> int:
        return len(self.by_id)

    def get(self, item_id: str) -> Optional[Entity]:
        return self.by_id.get(item_id)

    def id_of(self, entity: Entity) -> Optional[str]:
        value = entity.get(self.id_field)
        return None if value is None else str(value)

    def put(self, entity: Entity) -> Optional[str]:
        """Upsert by id. Entities without an id are ignored."""
        item_id = self.id_of(entity)
        if item_id is None:
            logger.warning("Ignoring entity without %s: %r", self.id_field, entity)
            return None
        self.by_id[item_id] = entity
        return item_id

    def remove(self, item_id: str) -> Optional[Entity]:
        return self.by_id.pop(item_id, None)

    def should_fetch_single(self, item_id: str, now: int) -> bool:
        """
        Decide whether `item_id` has to come from the server.

        Evaluated in order:
            1. the selected id changed                    → True
            2. the selected slot is already fetching      → False
            3. not in by_id and no error on record        → True
               (an error means the server had nothing; refetching would loop)
            4. older than the freshness window            → True
            5. otherwise                                  → did_invalidate
        """
        selected = self.selected
        if selected.id != item_id:
            logger.debug("shouldFetch %s - true: id changed", item_id)
            return True
        if selected.is_fetching:
            logger.debug("shouldFetch %s - false: isFetching", item_id)
            return False
        if item_id not in self.by_id and not selected.error:
            logger.debug("shouldFetch %s - true: not in map", item_id)
            return True
        if _is_stale(selected.last_updated, now, self.stale_after_ms):
            logger.debug("shouldFetch %s - true: older than %dms", item_id, self.stale_after_ms)
            return True
        logger.debug("shouldFetch %s - %s: didInvalidate", item_id, selected.did_invalidate)
        return selected.did_invalidate

    def invalidate(self) -> None:
        """Force the next access to the selected entity to refetch; cached data stays."""
        self.selected.did_invalidate = True

    def begin_fetch(self, item_id: str) -> None:
        self.selected = SelectedSlot(
            id=item_id,
            is_fetching=True,
            last_updated=self.selected.last_updated if self.selected.id == item_id else None,
        )

    def receive(
        self,
        item_id: str,
        entity: Optional[Entity],
        success: bool,
        error: Optional[str],
        received_at: int,
    ) -> None:
        """
        Apply a fetch response for `item_id`.

        The entity is upserted whenever one came back; slot metadata is only
        rewritten while the slot still selects `item_id`, so a late response
        for a previous selection cannot clobber the current one.
        """
        if success and entity is not None:
            self.put(entity)

        if self.selected.id != item_id:
            logger.debug("Response for %s arrived after selection moved to %s", item_id, self.selected.id)
            return

        self.selected.is_fetching = False
        self.selected.last_updated = received_at
        if success:
            self.selected.did_invalidate = False
            self.selected.error = None
        else:
            self.selected.error = error or "Unknown error"

    def set_selected(self, entity: Entity, received_at: Optional[int] = None) -> Optional[str]:
        """Upsert `entity` and point the selected slot at it as freshly received."""
        item_id = self.put(entity)
        if item_id is not None:
            self.selected = SelectedSlot(id=item_id, last_updated=received_at)
        return item_id

    def selected_item(self) -> Optional[Entity]:
        if self.selected.id is None:
            return None
        return self.by_id.get(self.selected.id)


# ══════════════════════════════════════════════════════════════════════════
# List Cache
# ══════════════════════════════════════════════════════════════════════════


class ListDescriptor(BaseModel):
    """One list slice: ordered ids plus its own fetch metadata."""
    items: Optional[List[str]] = None
    is_fetching: bool = False
    did_invalidate: bool = False
    last_updated: Optional[int] = None
    error: Optional[str] = None
    filter: Dict[str, Any] = Field(default_factory=dict)
    pagination: Dict[str, Any] = Field(default_factory=lambda: {"page": 1, "per": 20})


class ListNode:
    """A tree node: an optional descriptor plus children keyed by segment."""

    __slots__ = ("descriptor", "children")

    def __init__(self) -> None:
        self.descriptor: Optional[ListDescriptor] = None
        self.children: Dict[KeySegment, "ListNode"] = {}


class ListCache:
    """
    Nested list descriptors of one resource.

    Key paths are tuples of segments (see yote.client.paths); the mutators
    below default to ("all",) when given an empty path. Intermediate nodes
    are created on demand by mutators and never by reads.
    """

    def __init__(self, stale_after_ms: int = STALE_AFTER_MS):
        self.stale_after_ms = stale_after_ms
        self.root = ListNode()

    # ── Tree walk ─────────────────────────────────────────────────────────

    def _node(self, key_path: KeyPath) -> Optional[ListNode]:
        node = self.root
        for segment in key_path:
            node = node.children.get(segment)
            if node is None:
                return None
        return node

    def resolve(self, key_path: KeyPath) -> Optional[ListDescriptor]:
        """The descriptor at `key_path`, or None if any segment is absent."""
        node = self._node(key_path or DEFAULT_KEY_PATH)
        return node.descriptor if node is not None else None

    def ensure(self, key_path: KeyPath) -> ListDescriptor:
        node = self.root
        for segment in key_path or DEFAULT_KEY_PATH:
            node = node.children.setdefault(segment, ListNode())
        if node.descriptor is None:
            node.descriptor = ListDescriptor()
        return node.descriptor

    def descriptors(self) -> Iterator[ListDescriptor]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.descriptor is not None:
                yield node.descriptor
            stack.extend(node.children.values())

    # ── Fetch decision ────────────────────────────────────────────────────

    def should_fetch_list(self, key_path: KeyPath, now: int) -> bool:
        """
        Evaluated in order:
            1. no descriptor, or one without items     → True
            2. already fetching                        → False
            3. older than the freshness window         → True
            4. otherwise                               → did_invalidate
        """
        descriptor = self.resolve(key_path)
        if descriptor is None or descriptor.items is None:
            logger.debug("shouldFetchList %s - true: list not found", key_path)
            return True
        if descriptor.is_fetching:
            logger.debug("shouldFetchList %s - false: fetching", key_path)
            return False
        if _is_stale(descriptor.last_updated, now, self.stale_after_ms):
            logger.debug("shouldFetchList %s - true: older than %dms", key_path, self.stale_after_ms)
            return True
        logger.debug("shouldFetchList %s - %s: didInvalidate", key_path, descriptor.did_invalidate)
        return descriptor.did_invalidate

    # ── Fetch transitions ─────────────────────────────────────────────────

    def begin_fetch(self, key_path: KeyPath) -> ListDescriptor:
        descriptor = self.ensure(key_path)
        descriptor.is_fetching = True
        if descriptor.items is None:
            descriptor.items = []
        return descriptor

    def receive(
        self,
        key_path: KeyPath,
        ids: Optional[List[str]],
        success: bool,
        error: Optional[str],
        received_at: int,
    ) -> ListDescriptor:
        descriptor = self.ensure(key_path)
        descriptor.is_fetching = False
        descriptor.last_updated = received_at
        if success:
            descriptor.items = list(ids or [])
            descriptor.did_invalidate = False
            descriptor.error = None
        else:
            descriptor.error = error or "Unknown error"
            if descriptor.items is None:
                descriptor.items = []
        return descriptor

    # ── List utilities ────────────────────────────────────────────────────

    def set_filter(self, filter: Dict[str, Any], key_path: KeyPath = DEFAULT_KEY_PATH) -> None:
        self.ensure(key_path).filter = dict(filter)

    def set_pagination(self, pagination: Dict[str, Any], key_path: KeyPath = DEFAULT_KEY_PATH) -> None:
        self.ensure(key_path).pagination = dict(pagination)

    def invalidate_list(self, key_path: KeyPath = DEFAULT_KEY_PATH) -> None:
        self.ensure(key_path).did_invalidate = True

    def add_to_list(self, item_id: str, key_path: KeyPath = DEFAULT_KEY_PATH) -> None:
        descriptor = self.ensure(key_path)
        if descriptor.items is None:
            descriptor.items = []
        if item_id not in descriptor.items:
            descriptor.items.append(item_id)

    def remove_from_list(self, item_id: str, key_path: KeyPath = DEFAULT_KEY_PATH) -> None:
        descriptor = self.resolve(key_path)
        if descriptor is not None and descriptor.items:
            descriptor.items = [i for i in descriptor.items if i != item_id]

    def remove_everywhere(self, item_id: str) -> None:
        for descriptor in self.descriptors():
            if descriptor.items and item_id in descriptor.items:
                descriptor.items = [i for i in descriptor.items if i != item_id]

    def items_of(self, key_path: KeyPath, entities: EntityCache) -> Optional[List[Entity]]:
        """
        Entities of the list at `key_path` in list order, or None when the
        list has never been loaded. Ids missing from the map are skipped.
        """
        descriptor = self.resolve(key_path)
        if descriptor is None or descriptor.items is None:
            return None
        return [entities.by_id[i] for i in descriptor.items if i in entities.by_id]
