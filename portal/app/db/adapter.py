"""
User adapter.

Glue between the authentication layer and the database. Every method opens
its own short-lived session, so adapters can be shared across concurrent
requests; consistency is left to the database.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import UserRecord
from .models import User

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"name", "image", "username", "hashed_password", "email_verified"}


class UserAlreadyExistsError(Exception):
    """Raised when an email or username is already taken."""
    pass


class UserAdapter:
    """Find, create and update user records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_user(self, user_id: Optional[str]) -> Optional[UserRecord]:
        """Find a user by primary key. Returns None for a missing id."""
        if not user_id:
            return None

        async with self._session_factory() as session:
            user = await session.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    async def get_user_by_email(self, email: Optional[str]) -> Optional[UserRecord]:
        """Find a user by exact email match (no case folding)."""
        if not email:
            return None

        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    async def create_user(
        self,
        email: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
        hashed_password: Optional[str] = None,
        username: Optional[str] = None,
    ) -> UserRecord:
        """
        Insert a new user.

        Raises:
            UserAlreadyExistsError: If the email or username is taken
        """
        user = User(
            email=email,
            name=name,
            image=image,
            hashed_password=hashed_password,
            username=username,
        )

        async with self._session_factory() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise UserAlreadyExistsError("Email or username already in use") from e

            logger.info("Created user", extra={"user_id": user.id})
            return UserRecord.model_validate(user)

    async def update_user(self, user_id: str, **fields: Any) -> Optional[UserRecord]:
        """
        Apply profile changes to a user.

        Returns:
            The updated record, or None if the user no longer exists

        Raises:
            ValueError: If an unknown field is passed
            UserAlreadyExistsError: If the new username is taken
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        async with self._session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None

            for key, value in fields.items():
                setattr(user, key, value)

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise UserAlreadyExistsError("Username already in use") from e

            logger.info("Updated user", extra={"user_id": user_id, "fields": sorted(fields)})
            return UserRecord.model_validate(user)
