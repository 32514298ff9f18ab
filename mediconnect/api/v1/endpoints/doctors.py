"""Doctor endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from mediconnect.core.exceptions import NotFoundException
from mediconnect.dependencies import CacheManagerDep, CurrentAdmin, CurrentDoctor, DatabaseSession
from mediconnect.schemas.doctors import (
    DoctorCreate,
    DoctorDetailResponse,
    DoctorResponse,
    DoctorUpdate,
)
from mediconnect.services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("/", response_model=list[DoctorDetailResponse])
async def list_doctors(
    db: DatabaseSession,
    specialization: str | None = Query(None, description="Filter by specialization"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
) -> list[DoctorDetailResponse]:
    """Public doctor directory, newest first, with names from profiles."""
    rows = await DoctorService().list_doctors(
        db, skip=skip, limit=limit, specialization=specialization
    )
    return [DoctorDetailResponse.model_validate(row) for row in rows]


@router.post("/", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    current_admin: CurrentAdmin,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> DoctorResponse:
    """Provision a doctor record for an existing account (admin only)."""
    doctor = await DoctorService(cache_manager).create_doctor(db, doctor_data)
    return DoctorResponse.model_validate(doctor)


@router.patch("/me", response_model=DoctorResponse)
async def update_my_doctor_profile(
    doctor_data: DoctorUpdate,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> DoctorResponse:
    """Edit the caller's own doctor record."""
    service = DoctorService()
    doctor = await service.get_doctor_by_user_id(db, current_doctor.id)
    if not doctor:
        raise NotFoundException("Doctor profile not found")

    updated = await service.update_doctor(db, doctor["id"], doctor_data)
    if not updated:
        raise NotFoundException("Doctor profile not found")
    return DoctorResponse.model_validate(updated)


@router.get("/{doctor_id}", response_model=DoctorDetailResponse)
async def get_doctor(doctor_id: UUID, db: DatabaseSession) -> DoctorDetailResponse:
    """Doctor details for the booking page."""
    doctor = await DoctorService().get_doctor_with_profile(db, doctor_id)
    if not doctor:
        raise NotFoundException("Doctor not found")
    return DoctorDetailResponse.model_validate(doctor)
