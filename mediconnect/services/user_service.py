"""User and profile service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.core.exceptions import ConflictException, PersistenceException
from mediconnect.models.profiles import profiles
from mediconnect.models.user_roles import user_roles
from mediconnect.models.users import users
from mediconnect.schemas.roles import Role
from mediconnect.schemas.users import ProfileUpdate

logger = structlog.get_logger()


class UserService:
    """Service for identities and their profiles."""

    async def create_user(
        self,
        db: AsyncSession,
        email: str,
        password_hash: str,
        full_name: str | None = None,
    ) -> dict:
        """
        Create an identity with an empty profile and the patient role.

        Raises:
            ConflictException: If the email is already registered
            PersistenceException: If the store write fails
        """
        try:
            result = await db.execute(
                insert(users)
                .values(email=email.lower(), password_hash=password_hash, is_active=True)
                .returning(users)
            )
            user = dict(result.mappings().one())
            await db.execute(insert(profiles).values(user_id=user["id"], full_name=full_name))
            await db.execute(
                insert(user_roles).values(user_id=user["id"], role=Role.PATIENT.value)
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictException("Email is already registered")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("user_create_failed", error=str(e))
            raise PersistenceException("Failed to create account")

        logger.info("user_created", user_id=str(user["id"]))
        return user

    async def _get_one(self, db: AsyncSession, stmt: Any, what: str) -> dict | None:
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("store_read_failed", entity=what, error=str(e))
            raise PersistenceException(f"Failed to load {what}")
        row = result.mappings().first()
        return dict(row) if row else None

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by ID."""
        return await self._get_one(db, select(users).where(users.c.id == user_id), "user")

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get user by email."""
        return await self._get_one(
            db, select(users).where(users.c.email == email.lower()), "user"
        )

    async def update_last_login(self, db: AsyncSession, user_id: UUID) -> None:
        """Update user's last login timestamp."""
        try:
            await db.execute(
                update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("last_login_update_failed", user_id=str(user_id), error=str(e))
            raise PersistenceException("Failed to record sign in")

    async def get_profile(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """
        Get the profile of an identity.

        Raises:
            PersistenceException: If the store read fails
        """
        return await self._get_one(
            db, select(profiles).where(profiles.c.user_id == user_id), "profile"
        )

    async def upsert_profile(
        self, db: AsyncSession, user_id: UUID, values: dict[str, Any]
    ) -> dict:
        """
        Write profile fields for an identity, creating the row if needed.

        The write is committed on its own. Store errors are rolled back and
        re-raised as ``PersistenceException``.
        """
        try:
            existing = await db.execute(
                select(profiles.c.user_id).where(profiles.c.user_id == user_id)
            )
            if existing.first() is None:
                stmt = insert(profiles).values(user_id=user_id, **values).returning(profiles)
            else:
                stmt = (
                    update(profiles)  # type: ignore[assignment]
                    .where(profiles.c.user_id == user_id)
                    .values(**values, updated_at=datetime.now(UTC))
                    .returning(profiles)
                )
            result = await db.execute(stmt)
            profile = dict(result.mappings().one())
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("profile_write_failed", user_id=str(user_id), error=str(e))
            raise PersistenceException("Failed to update profile")

        return profile

    async def update_profile(
        self, db: AsyncSession, user_id: UUID, profile_data: ProfileUpdate
    ) -> dict:
        """Apply the fields the owner supplied to their profile."""
        update_data = profile_data.model_dump(exclude_unset=True)
        if not update_data:
            profile = await self.get_profile(db, user_id)
            if profile:
                return profile
        return await self.upsert_profile(db, user_id, update_data)
