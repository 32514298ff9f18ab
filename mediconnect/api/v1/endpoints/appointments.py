"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from mediconnect.dependencies import CurrentDoctor, CurrentPatient, DatabaseSession
from mediconnect.schemas.appointments import (
    AppointmentAnnotation,
    AppointmentBooking,
    AppointmentResponse,
    AppointmentStatusUpdate,
    ContactLinkResponse,
    DoctorAppointmentView,
    PatientAppointmentView,
)
from mediconnect.services.appointment_service import AppointmentService
from mediconnect.services.doctor_service import DoctorService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    data: AppointmentBooking,
    current_patient: CurrentPatient,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment with a doctor.

    The submitted contact details are saved to the caller's profile first.
    """
    return await AppointmentService(db).book(current_patient.id, data)


@router.get(
    "/patient",
    response_model=list[PatientAppointmentView],
    summary="List the caller's appointments as a patient",
)
async def list_patient_appointments(
    current_patient: CurrentPatient,
    db: DatabaseSession,
) -> list[PatientAppointmentView]:
    """Appointments by date, each with the doctor's name and specialization."""
    return await AppointmentService(db).patient_view(current_patient.id)


@router.get(
    "/doctor",
    response_model=list[DoctorAppointmentView],
    summary="List the caller's appointments as a doctor",
)
async def list_doctor_appointments(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> list[DoctorAppointmentView]:
    """Appointments by date, each with the patient's details."""
    doctor = await DoctorService().get_doctor_by_user_id(db, current_doctor.id)
    if not doctor:
        # Doctor role without a provisioned record
        return []
    return await AppointmentService(db).doctor_view(doctor["id"])


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Move the appointment to any status (confirm, complete, cancel, reopen)."""
    return await AppointmentService(db).set_status(appointment_id, current_doctor.id, data.status)


@router.patch(
    "/{appointment_id}/annotation",
    response_model=AppointmentResponse,
    summary="Save prescription and meeting link",
)
async def annotate_appointment(
    appointment_id: UUID,
    data: AppointmentAnnotation,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Overwrite the supplied fields; omitted ones keep their value."""
    return await AppointmentService(db).annotate(appointment_id, current_doctor.id, data)


@router.get(
    "/{appointment_id}/contact-link",
    response_model=ContactLinkResponse,
    summary="Messaging link for the patient",
)
async def get_contact_link(
    appointment_id: UUID,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> ContactLinkResponse:
    """Click-to-chat link prefilled with a greeting to the appointment's patient."""
    url = await AppointmentService(db).contact_link(appointment_id, current_doctor.id)
    return ContactLinkResponse(url=url)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a pending appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_patient: CurrentPatient,
    db: DatabaseSession,
) -> None:
    """Delete the caller's appointment while it is still pending."""
    await AppointmentService(db).cancel(appointment_id, current_patient.id)
