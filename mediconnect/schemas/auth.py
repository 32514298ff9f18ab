"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh (and revocation) request schema."""

    refresh_token: str


class SignupRequest(BaseModel):
    """Email/password registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: str | None = Field(None, max_length=200)


class LoginRequest(BaseModel):
    """Email/password sign in."""

    email: EmailStr
    password: str


class LoginResponse(Token):
    """Login response with tokens and the identity they belong to."""

    user_id: UUID
