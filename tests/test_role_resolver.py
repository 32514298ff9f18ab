"""Tests for role lookup and resolution."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from mediconnect.core.redis_client import CacheManager
from mediconnect.schemas.roles import Role, RoleResolution
from mediconnect.services.role_service import (
    RoleFound,
    RoleLookupFailed,
    RoleNotFound,
    RoleRepository,
    RoleResolver,
    settle_role,
)


def test_settle_role_falls_back_to_patient():
    assert settle_role(RoleFound(Role.DOCTOR)) == Role.DOCTOR
    assert settle_role(RoleNotFound()) == Role.PATIENT
    assert settle_role(RoleLookupFailed("connection refused")) == Role.PATIENT


async def test_resolve_found_role():
    resolver = RoleResolver(AsyncMock(return_value=RoleFound(Role.DOCTOR)))

    state = await resolver.resolve(uuid4())

    assert state == RoleResolution(role=Role.DOCTOR, loading=False)


async def test_missing_record_resolves_to_patient():
    resolver = RoleResolver(AsyncMock(return_value=RoleNotFound()))

    state = await resolver.resolve(uuid4())

    assert state.role == Role.PATIENT
    assert state.loading is False


async def test_failed_lookup_resolves_to_patient():
    resolver = RoleResolver(AsyncMock(return_value=RoleLookupFailed("timeout")))

    state = await resolver.resolve(uuid4())

    assert state.role == Role.PATIENT
    assert state.loading is False


async def test_raising_lookup_resolves_to_patient():
    resolver = RoleResolver(AsyncMock(side_effect=RuntimeError("boom")))

    state = await resolver.resolve(uuid4())

    assert state == RoleResolution(role=Role.PATIENT, loading=False)


async def test_no_identity_is_not_loading():
    lookup = AsyncMock()
    resolver = RoleResolver(lookup)

    state = await resolver.resolve(None)

    assert state == RoleResolution(role=None, loading=False)
    lookup.assert_not_awaited()


async def test_unresolved_and_loading_while_lookup_in_flight():
    release = asyncio.Event()

    async def lookup(_identity):
        await release.wait()
        return RoleFound(Role.ADMIN)

    resolver = RoleResolver(lookup)
    task = resolver.observe(uuid4())

    assert resolver.state == RoleResolution(role=Role.UNRESOLVED, loading=True)

    release.set()
    await task
    assert resolver.state == RoleResolution(role=Role.ADMIN, loading=False)


async def test_stale_lookup_is_discarded():
    first, second = uuid4(), uuid4()
    release_first = asyncio.Event()

    async def lookup(identity):
        if identity == first:
            await release_first.wait()
            return RoleFound(Role.DOCTOR)
        return RoleFound(Role.PATIENT)

    resolver = RoleResolver(lookup)
    first_task = resolver.observe(first)
    second_task = resolver.observe(second)

    await second_task
    assert resolver.state.role == Role.PATIENT

    release_first.set()
    await first_task

    assert resolver.identity == second
    assert resolver.state == RoleResolution(role=Role.PATIENT, loading=False)


async def test_sign_out_during_lookup_keeps_signed_out_state():
    release = asyncio.Event()

    async def lookup(_identity):
        await release.wait()
        return RoleFound(Role.DOCTOR)

    resolver = RoleResolver(lookup)
    task = resolver.observe(uuid4())
    resolver.observe(None)

    release.set()
    await task

    assert resolver.state == RoleResolution(role=None, loading=False)


async def test_same_identity_is_looked_up_once():
    lookup = AsyncMock(return_value=RoleFound(Role.DOCTOR))
    resolver = RoleResolver(lookup)
    identity = uuid4()

    await resolver.resolve(identity)
    await resolver.resolve(identity)

    lookup.assert_awaited_once_with(identity)


async def test_listeners_see_every_state_change():
    seen = []
    resolver = RoleResolver(AsyncMock(return_value=RoleFound(Role.DOCTOR)))
    unsubscribe = resolver.subscribe(seen.append)

    await resolver.resolve(uuid4())
    unsubscribe()
    await resolver.resolve(None)

    assert seen == [
        RoleResolution(role=Role.UNRESOLVED, loading=True),
        RoleResolution(role=Role.DOCTOR, loading=False),
    ]


async def test_repository_reads_stored_role(db_session, make_user):
    user = await make_user(role=Role.DOCTOR)

    result = await RoleRepository(db_session).lookup(user["id"])

    assert result == RoleFound(Role.DOCTOR)


async def test_repository_reports_missing_record(db_session, make_user):
    user = await make_user(role=None)

    result = await RoleRepository(db_session).lookup(user["id"])

    assert result == RoleNotFound()


async def test_repository_reports_store_errors():
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
    db.rollback = AsyncMock()

    result = await RoleRepository(db).lookup(uuid4())

    assert isinstance(result, RoleLookupFailed)
    db.rollback.assert_awaited_once()


async def test_repository_uses_cached_role():
    redis_client = MagicMock()
    redis_client.get.return_value = '{"role": "doctor"}'
    db = MagicMock()
    db.execute = AsyncMock()

    result = await RoleRepository(db, CacheManager(redis_client)).lookup(uuid4())

    assert result == RoleFound(Role.DOCTOR)
    db.execute.assert_not_awaited()


async def test_repository_caches_found_role(db_session, make_user, fake_redis, cache_manager):
    user = await make_user(role=Role.ADMIN)

    await RoleRepository(db_session, cache_manager).lookup(user["id"])

    fake_redis.setex.assert_called_once()
    key, _ttl, value = fake_redis.setex.call_args.args
    assert key == f"role:{user['id']}"
    assert value == '{"role": "admin"}'


async def test_assign_replaces_role_and_invalidates_cache(
    db_session, make_user, fake_redis, cache_manager
):
    user = await make_user()
    repository = RoleRepository(db_session, cache_manager)

    await repository.assign(user["id"], Role.DOCTOR)

    assert await RoleRepository(db_session).lookup(user["id"]) == RoleFound(Role.DOCTOR)
    fake_redis.delete.assert_called_once_with(f"role:{user['id']}")


async def test_assign_creates_missing_record(db_session, make_user):
    user = await make_user(role=None)

    await RoleRepository(db_session).assign(user["id"], Role.ADMIN)

    assert await RoleRepository(db_session).lookup(user["id"]) == RoleFound(Role.ADMIN)
