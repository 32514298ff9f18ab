"""Appointment service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    PersistenceException,
    ValidationException,
)
from mediconnect.models.appointments import appointments
from mediconnect.schemas.appointments import (
    AppointmentAnnotation,
    AppointmentBooking,
    AppointmentResponse,
    AppointmentStatus,
    DoctorAppointmentView,
    PatientAppointmentView,
)
from mediconnect.services.doctor_service import DoctorService
from mediconnect.services.join_service import JoinService
from mediconnect.services.notification_service import NotificationService
from mediconnect.services.user_service import UserService

logger = structlog.get_logger()

REQUIRED_BOOKING_FIELDS = (
    "full_name",
    "age",
    "gender",
    "phone",
    "appointment_date",
    "appointment_time",
    "symptoms",
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_booking_fields(data: AppointmentBooking) -> list[str]:
    """Names of required booking fields that are absent or blank."""
    details = data.patient_details
    values = {
        "full_name": details.full_name,
        "age": details.age,
        "gender": details.gender,
        "phone": details.phone,
        "appointment_date": data.appointment_date,
        "appointment_time": data.appointment_time,
        "symptoms": data.symptoms,
    }
    return [name for name in REQUIRED_BOOKING_FIELDS if _is_blank(values[name])]


def next_status(current: AppointmentStatus, requested: AppointmentStatus) -> AppointmentStatus:
    """Every status may move to every status, including back to pending."""
    return requested


class AppointmentService:
    """Service for managing the appointment lifecycle."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def book(self, patient_id: UUID, data: AppointmentBooking) -> AppointmentResponse:
        """
        Book an appointment as a patient.

        The patient's profile is updated with the submitted contact details
        first; the appointment is only inserted once that write succeeded.
        The two writes are not atomic.

        Args:
            patient_id: Identity of the booking patient
            data: Booking form data

        Returns:
            Created appointment, always pending

        Raises:
            ValidationException: If a required field is missing (nothing is written)
            NotFoundException: If the doctor does not exist
            PersistenceException: If either write fails
        """
        missing = missing_booking_fields(data)
        if missing:
            raise ValidationException(
                f"Missing required fields: {', '.join(missing)}",
                fields=missing,
            )

        try:
            doctor = await DoctorService().get_doctor_by_id(self.db, data.doctor_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("doctor_read_failed", doctor_id=str(data.doctor_id), error=str(e))
            raise PersistenceException("Failed to load doctor")
        if not doctor:
            raise NotFoundException("Doctor not found")

        details = data.patient_details
        await UserService().upsert_profile(
            self.db,
            patient_id,
            {
                "full_name": details.full_name.strip(),  # type: ignore[union-attr]
                "age": details.age,
                "gender": details.gender.strip(),  # type: ignore[union-attr]
                "phone": details.phone.strip(),  # type: ignore[union-attr]
            },
        )

        try:
            result = await self.db.execute(
                insert(appointments)
                .values(
                    doctor_id=data.doctor_id,
                    patient_id=patient_id,
                    appointment_date=data.appointment_date,
                    appointment_time=data.appointment_time,
                    symptoms=data.symptoms.strip(),  # type: ignore[union-attr]
                    status=AppointmentStatus.PENDING.value,
                )
                .returning(appointments)
            )
            row = result.mappings().one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "appointment_insert_failed",
                patient_id=str(patient_id),
                doctor_id=str(data.doctor_id),
                error=str(e),
            )
            raise PersistenceException("Failed to book appointment")

        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            patient_id=str(patient_id),
            doctor_id=str(data.doctor_id),
        )
        return AppointmentResponse.model_validate(dict(row))

    async def get_appointment(self, appointment_id: UUID) -> dict:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        try:
            result = await self.db.execute(
                select(appointments).where(appointments.c.id == appointment_id)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_read_failed", appointment_id=str(appointment_id), error=str(e))
            raise PersistenceException("Failed to load appointment")

        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def _list(self, condition: Any) -> list[dict]:
        # Same-day appointments keep the store's order
        stmt = select(appointments).where(condition).order_by(appointments.c.appointment_date.asc())
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_list_failed", error=str(e))
            raise PersistenceException("Failed to load appointments")
        return [dict(row) for row in result.mappings().all()]

    async def list_for_doctor(self, doctor_id: UUID) -> list[dict]:
        """All appointments of a doctor, by appointment date ascending."""
        return await self._list(appointments.c.doctor_id == doctor_id)

    async def list_for_patient(self, patient_id: UUID) -> list[dict]:
        """All appointments of a patient, by appointment date ascending."""
        return await self._list(appointments.c.patient_id == patient_id)

    async def doctor_view(self, doctor_id: UUID) -> list[DoctorAppointmentView]:
        """A doctor's appointments, each with the patient's profile attached."""
        rows = await self.list_for_doctor(doctor_id)
        joined = await JoinService(self.db).with_patient_profiles(rows)
        return [DoctorAppointmentView.model_validate(row) for row in joined]

    async def patient_view(self, patient_id: UUID) -> list[PatientAppointmentView]:
        """A patient's appointments, each with the doctor's name and specialization."""
        rows = await self.list_for_patient(patient_id)
        joined = await JoinService(self.db).with_doctor_details(rows)
        return [PatientAppointmentView.model_validate(row) for row in joined]

    async def _require_doctor(self, appointment: dict, actor_id: UUID) -> None:
        try:
            doctor = await DoctorService().get_doctor_by_user_id(self.db, actor_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("doctor_read_failed", user_id=str(actor_id), error=str(e))
            raise PersistenceException("Failed to load doctor")
        if not doctor or doctor["id"] != appointment["doctor_id"]:
            raise ForbiddenException("Only the appointment's doctor can do this")

    async def _update(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentResponse:
        values["updated_at"] = datetime.now(UTC)
        try:
            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**values)
                .returning(appointments)
            )
            row = result.mappings().first()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_update_failed", appointment_id=str(appointment_id), error=str(e))
            raise PersistenceException("Failed to update appointment")

        if not row:
            # Deleted between the read and the write
            raise NotFoundException("Appointment not found")
        return AppointmentResponse.model_validate(dict(row))

    async def set_status(
        self,
        appointment_id: UUID,
        actor_id: UUID,
        new_status: AppointmentStatus,
    ) -> AppointmentResponse:
        """
        Move an appointment to any status. Last write wins.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is not the appointment's doctor
        """
        appointment = await self.get_appointment(appointment_id)
        await self._require_doctor(appointment, actor_id)

        current = AppointmentStatus(appointment["status"])
        target = next_status(current, new_status)

        updated = await self._update(appointment_id, {"status": target.value})
        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.value,
            new_status=target.value,
        )
        return updated

    async def annotate(
        self,
        appointment_id: UUID,
        actor_id: UUID,
        data: AppointmentAnnotation,
    ) -> AppointmentResponse:
        """
        Set prescription and/or meeting link, in any status.

        Fields left out (or null) keep their stored value.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is not the appointment's doctor
        """
        appointment = await self.get_appointment(appointment_id)
        await self._require_doctor(appointment, actor_id)

        values = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if not values:
            return AppointmentResponse.model_validate(appointment)

        updated = await self._update(appointment_id, values)
        logger.info(
            "appointment_annotated",
            appointment_id=str(appointment_id),
            fields=sorted(values),
        )
        return updated

    async def cancel(self, appointment_id: UUID, actor_id: UUID) -> None:
        """
        Delete a pending appointment as its patient.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is not the appointment's patient
            ConflictException: If the appointment is no longer pending
        """
        appointment = await self.get_appointment(appointment_id)

        if appointment["patient_id"] != actor_id:
            raise ForbiddenException("Only the appointment's patient can cancel it")

        if appointment["status"] != AppointmentStatus.PENDING.value:
            raise ConflictException("Only pending appointments can be cancelled")

        try:
            await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_delete_failed", appointment_id=str(appointment_id), error=str(e))
            raise PersistenceException("Failed to cancel appointment")

        logger.info("appointment_cancelled", appointment_id=str(appointment_id))

    async def contact_link(self, appointment_id: UUID, actor_id: UUID) -> str:
        """
        Deep link for the doctor to message the appointment's patient.

        Raises:
            ValidationException: If the patient has no phone number on file
        """
        appointment = await self.get_appointment(appointment_id)
        await self._require_doctor(appointment, actor_id)

        joined = await JoinService(self.db).with_patient_profiles([appointment])
        patient = joined[0]["patient"]

        return NotificationService.notify_by_external_channel(
            patient["phone"],
            NotificationService.compose_greeting(patient["full_name"]),
        )
