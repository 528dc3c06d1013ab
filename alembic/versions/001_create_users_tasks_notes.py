"""Create users, tasks and notes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

Column names are the document field names served by the API ("_id",
"_task", "firstName", ...). Ids are 32-char hex strings assigned by the
application, so no server-side default is set on them.

Rollback: downgrade() drops all three tables.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("_id", sa.String(32), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("firstName", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("lastName", sa.String(255), nullable=False, server_default=sa.text("''")),
        # Role names, e.g. ["admin"]
        sa.Column("roles", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("_id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "tasks",
        sa.Column("_id", sa.String(32), nullable=False),
        sa.Column("_user", sa.String(32), nullable=True),
        sa.Column("_flow", sa.String(32), nullable=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(50), nullable=False, server_default=sa.text("'open'")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("_id"),
    )
    op.create_index("idx_tasks_flow", "tasks", ["_flow"])

    op.create_table(
        "notes",
        sa.Column("_id", sa.String(32), nullable=False),
        sa.Column("_user", sa.String(32), nullable=True),
        sa.Column("_task", sa.String(32), nullable=True),
        sa.Column("_flow", sa.String(32), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("_id"),
    )
    op.create_index("idx_notes_task", "notes", ["_task"])


def downgrade() -> None:
    op.drop_index("idx_notes_task", table_name="notes")
    op.drop_table("notes")
    op.drop_index("idx_tasks_flow", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("users")
