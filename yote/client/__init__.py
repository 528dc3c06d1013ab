# Client package init
"""
Yote — Cache Client
====================

Client-side entity and list caches for the Yote API.

    paths.py        key path normalization and the list route rule
    cache.py        EntityCache, ListCache and their descriptors
    api.py          ApiClient (httpx) returning response envelopes
    coordinator.py  FetchCoordinator: fetch-if-needed and in-flight dedup
    store.py        ResourceStore per resource, CacheContext holding them
"""

from yote.client.api import ApiClient
from yote.client.cache import EntityCache, ListCache, ListDescriptor, SelectedSlot
from yote.client.coordinator import FetchCoordinator, FetchResult, Resource
from yote.client.store import CacheContext, ResourceStore

__all__ = [
    "ApiClient",
    "CacheContext",
    "EntityCache",
    "FetchCoordinator",
    "FetchResult",
    "ListCache",
    "ListDescriptor",
    "Resource",
    "ResourceStore",
    "SelectedSlot",
]
