"""Yote — Note Routes (the shared CRUD surface for /api/notes)."""

from yote.routes.resource import build_resource_router
from yote.services.note_service import note_service

router = build_resource_router(note_service)
