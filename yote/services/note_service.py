"""
Yote — Note Service
====================

What:  Note CRUD with two task-aware twists.

    create():        the note must point at an existing task (`_task`); the
                     task's `_flow` is copied onto the note and `_user`
                     defaults to the caller.
    list_by_refs():  each note carries a `commentor` summary of its author
                     ({fullName, created}) for display next to the content.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yote.exceptions import NotFoundError, UpstreamError
from yote.models.note import Note
from yote.models.task import Task
from yote.models.user import User
from yote.services.resource_service import ResourceService

logger = logging.getLogger(__name__)


class NoteService(ResourceService):
    model = Note
    item_key = "note"
    list_key = "notes"

    async def create(
        self, db: AsyncSession, data: Dict[str, Any], user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        task_id = data.get("_task")
        try:
            task = await db.get(Task, task_id) if task_id else None
        except SQLAlchemyError as e:
            logger.error("Store error fetching task %s for a note: %s", task_id, e)
            raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
        if task is None:
            raise NotFoundError(
                resource="task",
                resource_id=task_id,
                message="NOT FOUND - INVALID TASK ID",
            )

        note = Note(
            user_id=data.get("_user") or user_id,
            task_id=task.id,
            flow_id=task.flow_id,
            content=data.get("content") or "",
        )
        db.add(note)
        await self._flush(db, "create")
        logger.info("Created note %s on task %s", note.id, task.id)
        return note.to_document()

    async def list_by_refs(
        self, db: AsyncSession, ref_key: str, ref_id: str, rest: str = ""
    ) -> List[Dict[str, Any]]:
        notes = await super().list_by_refs(db, ref_key, ref_id, rest)

        user_ids = {note["_user"] for note in notes if note.get("_user")}
        users: Dict[str, User] = {}
        if user_ids:
            try:
                result = await db.execute(select(User).where(User.id.in_(user_ids)))
            except SQLAlchemyError as e:
                raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
            users = {user.id: user for user in result.scalars().all()}

        for note in notes:
            author = users.get(note.get("_user"))
            note["commentor"] = (
                {"fullName": author.full_name, "created": author.created} if author else None
            )
        return notes


note_service = NoteService()
