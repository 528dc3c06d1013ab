"""
Yote — Task Service
====================

What:  Task CRUD plus the two narrow task updates exposed as their own
       routes (`/complete` and `/status`).
"""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from yote.database import utcnow
from yote.models.task import Task
from yote.services.resource_service import ResourceService

logger = logging.getLogger(__name__)


class TaskService(ResourceService):
    model = Task
    item_key = "task"
    list_key = "tasks"

    async def update_complete(self, db: AsyncSession, task_id: str, complete: bool) -> Dict[str, Any]:
        """Flip the completion flag only, leaving every other field as stored."""
        task = await self._get(db, task_id)
        task.complete = complete
        task.updated = utcnow()
        await self._flush(db, "complete")
        logger.info("Task %s complete=%s", task_id, complete)
        return task.to_document()

    async def update_status(self, db: AsyncSession, task_id: str, status: str) -> Dict[str, Any]:
        task = await self._get(db, task_id)
        task.status = status
        task.updated = utcnow()
        await self._flush(db, "status")
        logger.info("Task %s status=%s", task_id, status)
        return task.to_document()


task_service = TaskService()
