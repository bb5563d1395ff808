"""
services/user_service.py
------------------------
User lookup and lazy creation.

Emails are stored lower-cased; every lookup lower-cases its input.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.db.upsert import insert_ignore
from storefront.models.user import User

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def find_or_create(db: AsyncSession, email: str) -> User:
        """
        Return the user for this email, creating it if needed.

        Uses INSERT ... ON CONFLICT DO NOTHING on the unique email so two
        concurrent first logins resolve to the same row instead of one of
        them failing on the constraint.
        """
        email = email.strip().lower()
        user = await UserService.get_by_email(db, email)
        if user is not None:
            return user

        await insert_ignore(db, User, {"email": email}, conflict_columns=["email"])
        user = await UserService.get_by_email(db, email)
        logger.info("User created", user_id=user.id)
        return user
