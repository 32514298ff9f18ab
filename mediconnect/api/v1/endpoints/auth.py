"""Authentication endpoints."""

from fastapi import APIRouter, status

from mediconnect.dependencies import CacheManagerDep, DatabaseSession
from mediconnect.schemas.auth import LoginRequest, LoginResponse, SignupRequest, Token, TokenRefresh
from mediconnect.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/signup",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register with email and password",
)
async def signup(
    data: SignupRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> LoginResponse:
    """
    Create an account and sign it in.

    New accounts start with the patient role and an empty profile.
    """
    return await AuthService(cache_manager).signup(db, data.email, data.password, data.full_name)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in with email and password",
)
async def login(
    data: LoginRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> LoginResponse:
    """Verify credentials and return a token pair."""
    return await AuthService(cache_manager).login(db, data.email, data.password)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
)
async def refresh_token(data: TokenRefresh, cache_manager: CacheManagerDep) -> Token:
    """Exchange a valid refresh token for a new token pair."""
    return AuthService(cache_manager).refresh_access_token(data.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke refresh token",
)
async def logout(data: TokenRefresh, cache_manager: CacheManagerDep) -> None:
    """Revoke a refresh token so it can no longer be exchanged."""
    AuthService(cache_manager).revoke_token(data.refresh_token)
