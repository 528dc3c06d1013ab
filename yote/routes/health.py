"""
Yote — Health Check Route
==========================

GET /health → {"status", "version", "database", "documents", "uptime_seconds"}

`documents` holds a row count per resource table (users, tasks, notes)
taken through the request session. When the database cannot be
reached, status is "unhealthy" and documents is empty; the response is
still a 200 so probes can read the body.
"""

import logging
import time
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yote import __version__
from yote.database import get_db_session
from yote.models import Note, Task, User
from yote.schemas.envelope import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

COUNTED_MODELS = (User, Task, Note)

_start_time = time.time()


async def count_documents(db: AsyncSession) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for model in COUNTED_MODELS:
        table = model.__table__
        counts[table.name] = (await db.execute(select(func.count()).select_from(table))).scalar_one()
    return counts


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service and database status",
)
async def health_check(db: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    try:
        documents = await count_documents(db)
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: database unreachable: %s", e)
        status, database, documents = "unhealthy", "disconnected", {}
    else:
        status, database = "healthy", "connected"

    return HealthResponse(
        status=status,
        version=__version__,
        database=database,
        documents=documents,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
