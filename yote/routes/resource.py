"""
Yote — Shared Resource Routes
==============================

What:  Builds the CRUD router every resource exposes under /api/{resource}.
How:   build_resource_router(service) registers the handlers below against
       a ResourceService; resource modules add their own extra routes.

Registration order matters: the literal and `by-` routes must be matched
before the catch-all `/{item_id}`.

    POST   /api/{resource}                         login
    GET    /api/{resource}
    GET    /api/{resource}/search
    GET    /api/{resource}/by-{refKey}-list
    GET    /api/{resource}/by-{refKey}/{refId}[/{k}/{v}...]
    GET    /api/{resource}/default
    GET    /api/{resource}/schema                  admin
    GET    /api/{resource}/{id}
    PUT    /api/{resource}/{id}                    login
    DELETE /api/{resource}/{id}                    admin
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from yote.auth import require_login, require_role
from yote.database import get_db_session
from yote.models.user import User
from yote.schemas.envelope import ErrorResponse
from yote.services.resource_service import ResourceService

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"description": "Invalid query", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
    500: {"description": "Store error", "model": ErrorResponse},
}


def build_resource_router(service: ResourceService) -> APIRouter:
    item_key = service.item_key
    list_key = service.list_key
    router = APIRouter(
        prefix=f"/api/{list_key}",
        tags=[list_key.capitalize()],
        responses=ERROR_RESPONSES,
    )

    # - Create
    @router.post("", summary=f"Create a {item_key}")
    async def create(
        data: Dict[str, Any] = Body(...),
        user: User = Depends(require_login()),
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        item = await service.create(db, data, user_id=user.id)
        return {"success": True, "message": f"Created {item_key}", item_key: item}

    # - Read
    @router.get("", summary=f"List all {list_key}")
    async def list_all(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
        return {"success": True, list_key: await service.list_all(db)}

    @router.get("/search", summary=f"Search {list_key} by field values")
    async def search(request: Request, db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
        """
        Every query parameter other than `page`/`per` is an equality filter.
        Pagination is echoed back only when requested.
        """
        items, pagination = await service.search(db, request.query_params.multi_items())
        body: Dict[str, Any] = {"success": True, list_key: items}
        if pagination is not None:
            body["pagination"] = pagination
        return body

    @router.get("/by-{ref_key}-list", summary=f"List {list_key} whose field is one of the given values")
    async def list_by_values(
        ref_key: str,
        request: Request,
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        values = request.query_params.getlist(ref_key)
        return {"success": True, list_key: await service.list_by_values(db, ref_key, values)}

    @router.get("/by-{ref_key}/{ref_id}", summary=f"List {list_key} by a field value")
    async def list_by_ref(
        ref_key: str,
        ref_id: str,
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        return {"success": True, list_key: await service.list_by_refs(db, ref_key, ref_id)}

    @router.get("/by-{ref_key}/{ref_id}/{rest:path}", summary=f"List {list_key} by several field values")
    async def list_by_refs(
        ref_key: str,
        ref_id: str,
        rest: str,
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        return {"success": True, list_key: await service.list_by_refs(db, ref_key, ref_id, rest)}

    @router.get("/default", summary=f"Default {item_key} object for create forms")
    async def get_default() -> Dict[str, Any]:
        logger.info("get %s default object", item_key)
        return {"success": True, "defaultObj": service.get_default()}

    @router.get("/schema", summary=f"{item_key.capitalize()} field descriptions")
    async def get_schema(user: User = Depends(require_role("admin"))) -> Dict[str, Any]:
        logger.info("get %s schema", item_key)
        return {"success": True, "schema": service.get_schema()}

    @router.get("/{item_id}", summary=f"Get a single {item_key} by id")
    async def get_by_id(item_id: str, db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
        return {"success": True, item_key: await service.get_by_id(db, item_id)}

    # - Update
    @router.put("/{item_id}", summary=f"Update a {item_key}")
    async def update(
        item_id: str,
        data: Dict[str, Any] = Body(...),
        user: User = Depends(require_login()),
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        item = await service.update(db, item_id, data)
        return {"success": True, "message": f"Updated {item_key}", item_key: item}

    # - Delete
    @router.delete("/{item_id}", summary=f"Delete a {item_key}")
    async def delete(
        item_id: str,
        user: User = Depends(require_role("admin")),
        db: AsyncSession = Depends(get_db_session),
    ) -> Dict[str, Any]:
        await service.delete(db, item_id)
        return {"success": True, "message": f"Deleted {item_key}"}

    return router
