"""SQLAlchemy-backed user storage."""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError
from app.models.user import User
from app.repositories.base import UserRepository
from app.schemas.auth import UserResponse

logger = logging.getLogger(__name__)


class SQLAlchemyUserRepository(UserRepository):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[UserResponse]:
        # Explicit column list: the password hash never leaves the database here
        result = await self.db.execute(
            select(
                User.id,
                User.email,
                User.name,
                User.created_at,
                User.updated_at,
            ).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UserResponse.model_validate(dict(row._mapping))

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.google_id == google_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        name: Optional[str] = None,
        password_hash: Optional[str] = None,
        google_id: Optional[str] = None,
    ) -> User:
        user = User(
            email=email,
            name=name,
            password_hash=password_hash,
            google_id=google_id,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # The insert is the first write of the request, so rolling back
            # discards nothing else.
            await self.db.rollback()
            logger.info("User insert rejected by unique constraint: %s", type(e.orig).__name__)
            raise ConflictError(
                message="User already exists with this email",
                context={"constraint": "users_unique"},
            ) from e
        return user

    async def link_google_id(self, user: User, google_id: str) -> User:
        user.google_id = google_id
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("Google link rejected by unique constraint: %s", type(e.orig).__name__)
            raise ConflictError(
                message="Google account is already linked to another user",
                context={"constraint": "users_google_id_key"},
            ) from e
        return user
