"""Doctor service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.core.exceptions import ConflictException, NotFoundException, PersistenceException
from mediconnect.core.redis_client import CacheManager
from mediconnect.models.doctors import doctors
from mediconnect.models.users import users
from mediconnect.schemas.doctors import DoctorCreate, DoctorUpdate
from mediconnect.schemas.roles import Role
from mediconnect.services.join_service import JoinService
from mediconnect.services.role_service import RoleRepository

logger = structlog.get_logger()


class DoctorService:
    """Service for doctor records."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager (used for role invalidation)."""
        self.cache = cache_manager

    async def create_doctor(self, db: AsyncSession, doctor_data: DoctorCreate) -> dict:
        """
        Provision a doctor record for an existing identity and give it the doctor role.

        The doctor row and the role record are committed together; if either
        write fails neither is kept, so provisioning can simply be retried.

        Raises:
            NotFoundException: If the identity does not exist
            ConflictException: If the identity already has a doctor record
            PersistenceException: If the store write fails
        """
        try:
            user = await db.execute(select(users.c.id).where(users.c.id == doctor_data.user_id))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("user_read_failed", user_id=str(doctor_data.user_id), error=str(e))
            raise PersistenceException("Failed to load user")
        if user.first() is None:
            raise NotFoundException("User not found")

        if await self.get_doctor_by_user_id(db, doctor_data.user_id):
            raise ConflictException("User already has a doctor profile")

        roles = RoleRepository(db, self.cache)
        try:
            result = await db.execute(
                insert(doctors)
                .values(
                    user_id=doctor_data.user_id,
                    specialization=doctor_data.specialization,
                    qualification=doctor_data.qualification,
                    experience_years=doctor_data.experience_years,
                    consultation_fee=doctor_data.consultation_fee,
                    bio=doctor_data.bio,
                )
                .returning(doctors)
            )
            doctor = dict(result.mappings().one())
            await roles.assign(doctor_data.user_id, Role.DOCTOR, commit=False)
            await db.commit()
        except PersistenceException:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("doctor_create_failed", user_id=str(doctor_data.user_id), error=str(e))
            raise PersistenceException("Failed to create doctor profile")

        roles.invalidate(doctor_data.user_id)

        logger.info("doctor_provisioned", doctor_id=str(doctor["id"]), user_id=str(doctor["user_id"]))
        return doctor

    async def _get_one(self, db: AsyncSession, condition: Any) -> dict | None:
        try:
            result = await db.execute(select(doctors).where(condition))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("doctor_read_failed", error=str(e))
            raise PersistenceException("Failed to load doctor")
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def get_doctor_by_id(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get doctor by ID."""
        return await self._get_one(db, doctors.c.id == doctor_id)

    async def get_doctor_by_user_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get the doctor record owned by an identity."""
        return await self._get_one(db, doctors.c.user_id == user_id)

    async def get_doctor_with_profile(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get a doctor joined with its owner's profile."""
        doctor = await self.get_doctor_by_id(db, doctor_id)
        if not doctor:
            return None

        joined = await JoinService(db).with_doctor_profiles([doctor])
        return joined[0]

    async def list_doctors(
        self,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 50,
        specialization: str | None = None,
    ) -> list[dict[str, Any]]:
        """List doctors, newest first, each joined with its owner's profile."""
        query = select(doctors)
        if specialization:
            query = query.where(doctors.c.specialization.ilike(f"%{specialization}%"))
        query = query.order_by(doctors.c.created_at.desc()).offset(skip).limit(limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("doctor_list_failed", error=str(e))
            raise PersistenceException("Failed to load doctors")

        rows = [dict(row) for row in result.mappings().all()]
        return await JoinService(db).with_doctor_profiles(rows)

    async def update_doctor(
        self, db: AsyncSession, doctor_id: UUID, doctor_data: DoctorUpdate
    ) -> dict | None:
        """Update descriptive fields; the identity linkage never changes."""
        existing = await self.get_doctor_by_id(db, doctor_id)
        if not existing:
            return None

        update_values = {
            field: value
            for field, value in doctor_data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if not update_values:
            return existing

        update_values["updated_at"] = datetime.now(UTC)

        try:
            result = await db.execute(
                update(doctors)
                .where(doctors.c.id == doctor_id)
                .values(**update_values)
                .returning(doctors)
            )
            updated_doctor = result.mappings().first()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("doctor_update_failed", doctor_id=str(doctor_id), error=str(e))
            raise PersistenceException("Failed to update doctor profile")

        return dict(updated_doctor) if updated_doctor else None
