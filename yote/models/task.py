"""
Yote — Task Model
==================

What:  The `tasks` table. A task belongs to a flow and a user; notes hang
       off tasks through their `_task` field.

Stored field names follow the document convention used by the API and the
client cache: references are prefixed with an underscore (`_user`, `_flow`).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Index, String, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from yote.database import Base, new_object_id, utcnow


class Task(Base):
    """
    Lifecycle:
        created with status 'open' and complete=False, then moved through
        PUT /api/tasks/{id}/status and PUT /api/tasks/{id}/complete.
    """

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column("_id", String(32), primary_key=True, default=new_object_id)
    user_id: Mapped[Optional[str]] = mapped_column("_user", String(32), nullable=True)
    flow_id: Mapped[Optional[str]] = mapped_column("_flow", String(32), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="open")
    created: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_tasks_flow", "_flow"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, name='{self.name}', status='{self.status}')>"
