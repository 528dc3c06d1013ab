"""
Yote — Note Model
==================

What:  The `notes` table: comments left on a task.
How:   `_flow` is copied from the parent task when the note is created, so
       notes can be listed per flow without a join.

Query Patterns:
    - Notes of a task: GET /api/notes/by-_task/{taskId}
      → uses idx_notes_task
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, String, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from yote.database import Base, new_object_id, utcnow


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[str] = mapped_column("_id", String(32), primary_key=True, default=new_object_id)
    user_id: Mapped[Optional[str]] = mapped_column("_user", String(32), nullable=True)
    task_id: Mapped[Optional[str]] = mapped_column("_task", String(32), nullable=True)
    flow_id: Mapped[Optional[str]] = mapped_column("_flow", String(32), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_notes_task", "_task"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, task='{self.task_id}')>"
