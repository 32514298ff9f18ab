"""Doctor schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class DoctorBase(BaseModel):
    """Descriptive doctor fields."""

    specialization: str = Field(..., min_length=1, max_length=200)
    qualification: str | None = None
    experience_years: int | None = Field(None, ge=0)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    bio: str | None = None


class DoctorCreate(DoctorBase):
    """Schema for provisioning a doctor record for an existing identity."""

    user_id: UUID


class DoctorUpdate(BaseModel):
    """Schema for a doctor editing their own descriptive fields."""

    specialization: str | None = Field(None, min_length=1, max_length=200)
    qualification: str | None = None
    experience_years: int | None = Field(None, ge=0)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    bio: str | None = None


class DoctorResponse(DoctorBase):
    """Doctor record as stored."""

    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class DoctorProfileSummary(BaseModel):
    """Profile fields shown next to a doctor."""

    full_name: str
    avatar_url: str | None = None


class DoctorDetailResponse(DoctorResponse):
    """Doctor record joined with its owner's profile."""

    profile: DoctorProfileSummary
