"""
dependencies.py
---------------
FastAPI dependency injection functions for session authentication.

Flow:
  1. require_session decrypts the session cookie (no DB round-trip) and
     returns the user id, or raises LoginRequired. main.py turns that into
     a redirect to the login entry point, so the handler never runs.
  2. get_current_user loads the full User, rejecting sessions whose user
     no longer exists.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import LoginRequired
from storefront.core.logging import get_logger
from storefront.db.session import get_db
from storefront.models.user import User
from storefront.services.session_service import SessionManager
from storefront.services.user_service import UserService

logger = get_logger(__name__)


def require_session(request: Request) -> str:
    return SessionManager.require_session(request)


async def get_current_user(
    user_id: Annotated[str, Depends(require_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Load and return the User behind a valid session cookie.
    Raises LoginRequired if the user no longer exists.
    """
    user = await UserService.get_by_id(db, user_id)
    if user is None:
        logger.warning("User from valid session not found in DB", user_id=user_id)
        raise LoginRequired()
    return user

