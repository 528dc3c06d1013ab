"""
Yote — User Model
==================

What:  The `users` table. Users author tasks and notes and carry the roles
       the auth collaborator checks (`admin` gates delete and schema routes).
"""

from datetime import datetime
from typing import List

from sqlalchemy import JSON, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from yote.database import Base, new_object_id, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column("_id", String(32), primary_key=True, default=new_object_id)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column("firstName", String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column("lastName", String(255), nullable=False, default="")
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
