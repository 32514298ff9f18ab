"""API v1 router configuration."""

from fastapi import APIRouter

from mediconnect.api.v1.endpoints import (
    access,
    appointments,
    auth,
    doctors,
    health,
    users,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(access.router)
api_router.include_router(users.router)
api_router.include_router(doctors.router)
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
