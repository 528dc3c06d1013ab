"""
Yote — CRUD Scaffold Package
=============================

What: REST endpoints for Tasks and Notes plus the client-side cache that consumes them.

Layout:
    ┌─────────────────────────────────────┐
    │      Routes (FastAPI, /api/...)     │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (query building)      │  ← ref paths, search, CRUD
    ├─────────────────────────────────────┤
    │      Models (SQLAlchemy documents)  │
    ├─────────────────────────────────────┤
    │      Database (async sessions)      │
    └─────────────────────────────────────┘

    yote.client sits on the other side of the wire:
    ApiClient → FetchCoordinator → EntityCache / ListCache, grouped per
    resource in a ResourceStore and per application in a CacheContext.
"""

__version__ = "1.0.0"
