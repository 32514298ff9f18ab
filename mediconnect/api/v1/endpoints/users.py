"""User profile endpoints."""

from fastapi import APIRouter

from mediconnect.core.exceptions import NotFoundException
from mediconnect.dependencies import CurrentActor, DatabaseSession, Resolver
from mediconnect.schemas.roles import RoleResolution
from mediconnect.schemas.users import ProfileResponse, ProfileUpdate
from mediconnect.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/profile", response_model=ProfileResponse)
async def get_my_profile(current_actor: CurrentActor, db: DatabaseSession):
    """Get the caller's own profile."""
    profile = await UserService().get_profile(db, current_actor.id)
    if not profile:
        raise NotFoundException("Profile not found")
    return ProfileResponse.model_validate(profile)


@router.patch("/me/profile", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_actor: CurrentActor,
    db: DatabaseSession,
):
    """Update the caller's own profile. Profiles are only ever written by their owner."""
    profile = await UserService().update_profile(db, current_actor.id, profile_data)
    return ProfileResponse.model_validate(profile)


@router.get("/me/role", response_model=RoleResolution)
async def get_my_role(current_actor: CurrentActor, resolver: Resolver) -> RoleResolution:
    """Resolved role of the caller."""
    return await resolver.resolve(current_actor.id)
