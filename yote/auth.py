"""
Yote — Auth Collaborator
=========================

What:  FastAPI dependencies gating routes on login and role.
How:   The caller's user id travels in a header (settings.user_id_header,
       "X-User-Id" by default) and is resolved against the users table.
       Credential checks belong to whatever sits in front of the API and
       are not done here.

Usage:
    @router.post("", ...)
    async def create(user: User = Depends(require_login()), ...)

    @router.delete("/{item_id}", ...)
    async def delete(user: User = Depends(require_role("admin")), ...)
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yote.config import settings
from yote.database import get_db_session
from yote.exceptions import ForbiddenError, UnauthorizedError, UpstreamError
from yote.models.user import User

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    """The user named by the user-id header, or None for anonymous calls."""
    user_id = request.headers.get(settings.user_id_header)
    if not user_id:
        return None
    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as e:
        logger.error("Store error resolving user %s: %s", user_id, e)
        raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
    if user is None:
        logger.warning("Unknown user id in %s header: %s", settings.user_id_header, user_id)
    return user


def require_login() -> Callable:
    async def dependency(user: Optional[User] = Depends(get_current_user)) -> User:
        if user is None:
            raise UnauthorizedError()
        return user

    return dependency


def require_role(role: str) -> Callable:
    async def dependency(user: User = Depends(require_login())) -> User:
        if not user.has_role(role):
            raise ForbiddenError(role=role, context={"user_id": user.id})
        return user

    return dependency
