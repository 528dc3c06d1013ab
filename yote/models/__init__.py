"""
Yote — ORM Models
==================

Importing this package registers every table with `Base.metadata`
(Alembic and the test fixtures rely on that).
"""

from yote.models.note import Note
from yote.models.task import Task
from yote.models.user import User

__all__ = ["Note", "Task", "User"]
