"""Authentication service for email/password sign in and JWT sessions."""

from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.config import settings
from mediconnect.core.exceptions import UnauthorizedException
from mediconnect.core.redis_client import CacheManager
from mediconnect.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    identity_from_token,
    verify_password,
)
from mediconnect.schemas.auth import LoginResponse, Token
from mediconnect.services.user_service import UserService


class AuthService:
    """Authentication service issuing and revoking session tokens."""

    def __init__(self, cache_manager: CacheManager):
        """Initialize auth service with cache manager."""
        self.cache = cache_manager

    async def signup(
        self, db: AsyncSession, email: str, password: str, full_name: str | None = None
    ) -> LoginResponse:
        """Register a new identity and sign it in."""
        user = await UserService().create_user(
            db,
            email=email,
            password_hash=get_password_hash(password),
            full_name=full_name,
        )
        tokens = self.create_tokens(str(user["id"]))
        return LoginResponse(**tokens.model_dump(), user_id=user["id"])

    async def login(self, db: AsyncSession, email: str, password: str) -> LoginResponse:
        """
        Verify credentials and issue a token pair.

        Raises:
            UnauthorizedException: If the credentials are wrong or the account is inactive
        """
        user_service = UserService()
        user = await user_service.get_user_by_email(db, email)

        if not user or not verify_password(password, user["password_hash"]):
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise UnauthorizedException("User account is deactivated")

        await user_service.update_last_login(db, user["id"])

        tokens = self.create_tokens(str(user["id"]))
        return LoginResponse(**tokens.model_dump(), user_id=user["id"])

    def create_tokens(self, user_id: str) -> Token:
        """Create access and refresh tokens for an identity."""
        return Token(
            access_token=create_access_token(data={"sub": user_id}),
            refresh_token=create_refresh_token(data={"sub": user_id}),
            token_type="bearer",
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create a new token pair from a refresh token.

        Raises:
            UnauthorizedException: If the refresh token is invalid or revoked
        """
        user_id = identity_from_token(refresh_token, expected_type="refresh")
        if user_id is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache.exists(f"blacklist:{refresh_token}"):
            raise UnauthorizedException("Token has been revoked")

        return self.create_tokens(str(user_id))

    def revoke_token(self, token: str) -> None:
        """Revoke a refresh token by adding it to the blacklist until it would expire."""
        ttl = settings.refresh_token_expire_days * 86400
        self.cache.set(f"blacklist:{token}", "1", ttl=ttl)
