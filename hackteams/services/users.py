"""Local mirror of the identity provider's user records."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.models.user import User

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def sync_user(db: AsyncSession, user_id: str, email: str, name: Optional[str] = None) -> User:
    """Insert or refresh a user from the provider's profile. Caller commits."""
    user = await get_user(db, user_id)
    if user is None:
        user = User(id=user_id, email=email.strip().lower(), name=name)
        db.add(user)
        logger.info("Synced new user %s", user_id)
    else:
        user.email = email.strip().lower()
        # Tokens without a name claim keep the stored name.
        if name is not None:
            user.name = name
    await db.flush()
    return user
