"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Table,
    Text,
    Time,
    Uuid,
    text,
)

from mediconnect.models.base import metadata

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references, fixed at creation
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("patient_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    # Appointment details
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("symptoms", Text, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default=text("'pending'")),
    # Clinical side channel, doctor only
    Column("prescription", Text, nullable=True),
    Column("meet_link", Text, nullable=True),
    # Audit fields
    Column(
        "created_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    ),
    Column(
        "updated_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    ),
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
)
