"""
Yote — Task Routes
===================

The shared CRUD surface for /api/tasks plus the two narrow updates.
"""

from typing import Any, Dict

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from yote.auth import require_login
from yote.database import get_db_session
from yote.models.user import User
from yote.routes.resource import build_resource_router
from yote.schemas.envelope import TaskCompleteUpdate, TaskStatusUpdate
from yote.services.task_service import task_service

router = build_resource_router(task_service)


@router.put("/{item_id}/complete", summary="Mark a task complete or not complete")
async def update_complete(
    item_id: str,
    body: TaskCompleteUpdate,
    user: User = Depends(require_login()),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    task = await task_service.update_complete(db, item_id, body.complete)
    return {"success": True, "message": "Updated task", "task": task}


@router.put("/{item_id}/status", summary="Change a task's status")
async def update_status(
    item_id: str,
    body: TaskStatusUpdate,
    user: User = Depends(require_login()),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    task = await task_service.update_status(db, item_id, body.status)
    return {"success": True, "message": "Updated task", "task": task}
