"""Profile schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    """Schema for updating the caller's own profile."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    age: int | None = Field(None, ge=0, le=150)
    gender: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=20)
    avatar_url: str | None = None


class ProfileResponse(BaseModel):
    """Profile as stored."""

    user_id: UUID
    full_name: str | None = None
    age: int | None = None
    gender: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientSummary(BaseModel):
    """Patient details attached to an appointment for the doctor's view."""

    full_name: str
    age: int
    gender: str
    phone: str


class DoctorSummary(BaseModel):
    """Doctor details attached to an appointment for the patient's view."""

    full_name: str
    specialization: str
