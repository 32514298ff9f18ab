"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from mediconnect.schemas.users import DoctorSummary, PatientSummary


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PatientDetails(BaseModel):
    """
    Contact details submitted with a booking.

    Presence is checked by the booking service rather than here, so that a
    missing field is reported before anything is written.
    """

    full_name: str | None = Field(None, max_length=200)
    age: int | None = Field(None, ge=0, le=150)
    gender: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=20)


class AppointmentBooking(BaseModel):
    """Schema for booking a new appointment."""

    doctor_id: UUID
    appointment_date: date | None = None
    appointment_time: time | None = None
    symptoms: str | None = Field(None, max_length=2000)
    patient_details: PatientDetails = Field(default_factory=PatientDetails)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentAnnotation(BaseModel):
    """Clinical side-channel fields. Omitted or null fields are left untouched."""

    prescription: str | None = Field(None, max_length=5000)
    meet_link: str | None = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    doctor_id: UUID
    patient_id: UUID
    appointment_date: date
    appointment_time: time
    symptoms: str
    status: AppointmentStatus
    prescription: str | None = None
    meet_link: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def can_cancel(self) -> bool:
        """Cancellation is only offered while the appointment is pending."""
        return self.status == AppointmentStatus.PENDING


class DoctorAppointmentView(AppointmentResponse):
    """Appointment as listed for the referenced doctor."""

    patient: PatientSummary


class PatientAppointmentView(AppointmentResponse):
    """Appointment as listed for the referenced patient."""

    doctor: DoctorSummary


class ContactLinkResponse(BaseModel):
    """External messaging deep link."""

    url: str
