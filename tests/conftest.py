import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Settings are read at import time; tests never need a real server database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
load_dotenv()

from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mediconnect.core.redis_client import CacheManager
from mediconnect.core.security import create_access_token
from mediconnect.database import get_db
from mediconnect.dependencies import get_cache_manager
from mediconnect.main import app
from mediconnect.models import metadata
from mediconnect.models.doctors import doctors
from mediconnect.models.user_roles import user_roles
from mediconnect.schemas.roles import Role
from mediconnect.services.user_service import UserService

# Separate from DATABASE_URL so a developer .env can never point tests at real data
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh schema."""
    # StaticPool keeps the single in-memory database alive for the whole test
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def fake_redis() -> MagicMock:
    """Redis client double that always misses."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.exists.return_value = 0
    return redis_client


@pytest.fixture
def cache_manager(fake_redis: MagicMock) -> CacheManager:
    return CacheManager(redis_client=fake_redis)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, cache_manager: CacheManager
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: cache_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def headers_for(user_id: UUID) -> dict[str, str]:
    """Authorization header carrying an access token for ``user_id``."""
    token = create_access_token(data={"sub": str(user_id)}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory creating an account with a profile and the given role."""
    counter = {"n": 0}

    async def _make_user(
        full_name: str = "Test User",
        role: Role | None = Role.PATIENT,
    ) -> dict[str, Any]:
        counter["n"] += 1
        user = await UserService().create_user(
            db_session,
            email=f"user{counter['n']}@example.com",
            password_hash="not-a-real-hash",
            full_name=full_name,
        )
        if role is None:
            await db_session.execute(delete(user_roles).where(user_roles.c.user_id == user["id"]))
            await db_session.commit()
        elif role != Role.PATIENT:
            await db_session.execute(
                user_roles.update().where(user_roles.c.user_id == user["id"]).values(role=role.value)
            )
            await db_session.commit()

        return {**user, "headers": headers_for(user["id"])}

    return _make_user


@pytest.fixture
def make_doctor(
    db_session: AsyncSession, make_user: Callable[..., Awaitable[dict[str, Any]]]
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory creating an account with the doctor role and a doctor record."""

    async def _make_doctor(
        full_name: str = "Dr. Grace Hopper",
        specialization: str = "Cardiology",
    ) -> dict[str, Any]:
        user = await make_user(full_name=full_name, role=Role.DOCTOR)
        result = await db_session.execute(
            insert(doctors)
            .values(user_id=user["id"], specialization=specialization)
            .returning(doctors)
        )
        doctor = dict(result.mappings().one())
        await db_session.commit()
        return {**doctor, "user": user, "headers": user["headers"]}

    return _make_doctor


@pytest.fixture
def booking_payload() -> Callable[..., dict[str, Any]]:
    """Builder for a complete booking request."""

    def _payload(doctor_id: UUID, **overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "doctor_id": str(doctor_id),
            "appointment_date": "2030-05-04",
            "appointment_time": "09:30:00",
            "symptoms": "Persistent cough",
            "patient_details": {
                "full_name": "Ada Lovelace",
                "age": 36,
                "gender": "female",
                "phone": "+44 20 7946 0018",
            },
        }
        details = overrides.pop("patient_details", None)
        if details is not None:
            payload["patient_details"] = {**payload["patient_details"], **details}
        payload.update(overrides)
        return payload

    return _payload
