"""Role lookup and asynchronous role resolution."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.config import settings
from mediconnect.core.exceptions import PersistenceException
from mediconnect.core.redis_client import CacheManager
from mediconnect.models.user_roles import user_roles
from mediconnect.schemas.roles import PERSISTED_ROLES, Role, RoleResolution

logger = structlog.get_logger()


@dataclass(frozen=True)
class RoleFound:
    """A role record exists for the identity."""

    role: Role


@dataclass(frozen=True)
class RoleNotFound:
    """No usable role record exists for the identity."""


@dataclass(frozen=True)
class RoleLookupFailed:
    """The store could not be queried."""

    error: str


RoleLookupResult = RoleFound | RoleNotFound | RoleLookupFailed
RoleLookup = Callable[[UUID], Awaitable[RoleLookupResult]]
RoleListener = Callable[[RoleResolution], None]


def settle_role(result: RoleLookupResult, default: Role = Role.PATIENT) -> Role:
    """Map a lookup result to a concrete role, falling back to ``default``."""
    if isinstance(result, RoleFound):
        return result.role
    return default


class RoleRepository:
    """Reads and writes role records, with an optional Redis cache in front."""

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize repository with database session and optional cache."""
        self.db = db
        self.cache = cache_manager

    @staticmethod
    def _get_role_cache_key(user_id: UUID) -> str:
        """Generate cache key for a role record."""
        return f"role:{user_id}"

    async def lookup(self, user_id: UUID) -> RoleLookupResult:
        """
        Look up the stored role of an identity.

        Never raises for store errors; they are reported as ``RoleLookupFailed``.
        """
        if self.cache:
            cached = self.cache.get_json(self._get_role_cache_key(user_id))
            if cached and cached.get("role") in {r.value for r in PERSISTED_ROLES}:
                return RoleFound(Role(cached["role"]))

        try:
            result = await self.db.execute(
                select(user_roles.c.role).where(user_roles.c.user_id == user_id)
            )
            stored = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            # Leave the session usable for the rest of the request
            await self.db.rollback()
            return RoleLookupFailed(str(e))

        try:
            role = Role(stored) if stored is not None else None
        except ValueError:
            role = None

        if role is None or role not in PERSISTED_ROLES:
            return RoleNotFound()

        if self.cache:
            self.cache.set_json(
                self._get_role_cache_key(user_id),
                {"role": role.value},
                ttl=settings.role_cache_ttl_seconds,
            )

        return RoleFound(role)

    async def assign(self, user_id: UUID, role: Role, commit: bool = True) -> None:
        """
        Create or replace the role record of an identity.

        Args:
            user_id: Identity to assign the role to
            role: One of the persisted roles
            commit: Commit immediately; pass False to join the caller's
                transaction, which then commits and calls ``invalidate``

        Raises:
            PersistenceException: If the store write fails (the session is rolled back)
        """
        if role not in PERSISTED_ROLES:
            raise ValueError(f"Role {role.value!r} cannot be stored")

        try:
            existing = await self.db.execute(
                select(user_roles.c.user_id).where(user_roles.c.user_id == user_id)
            )
            if existing.first() is None:
                stmt = insert(user_roles).values(user_id=user_id, role=role.value)
            else:
                stmt = (
                    update(user_roles)  # type: ignore[assignment]
                    .where(user_roles.c.user_id == user_id)
                    .values(role=role.value)
                )
            await self.db.execute(stmt)
            if commit:
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("role_assignment_failed", user_id=str(user_id), error=str(e))
            raise PersistenceException("Failed to store role")

        if commit:
            self.invalidate(user_id)

        logger.info("role_assigned", user_id=str(user_id), role=role.value, committed=commit)

    def invalidate(self, user_id: UUID) -> None:
        """Drop the cached role of an identity."""
        if self.cache:
            self.cache.delete(self._get_role_cache_key(user_id))


class RoleResolver:
    """
    Tracks the role of whichever identity is currently observed.

    Each resolution is tagged with the identity and a generation number; a
    lookup that completes after a newer identity has been observed is
    discarded. Lookup failures and missing records settle to the default role,
    so an identity never stays unresolved once its lookup finishes.
    """

    def __init__(self, lookup: RoleLookup, default_role: Role = Role.PATIENT):
        """Initialize resolver with an async lookup function."""
        self._lookup = lookup
        self._default_role = default_role
        self._identity: UUID | None = None
        self._generation = 0
        self._state = RoleResolution(role=None, loading=False)
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[RoleListener] = []

    @property
    def state(self) -> RoleResolution:
        """Current role and loading flag."""
        return self._state

    @property
    def identity(self) -> UUID | None:
        """Identity the current state belongs to."""
        return self._identity

    def subscribe(self, listener: RoleListener) -> Callable[[], None]:
        """Register a listener called on every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def observe(self, identity: UUID | None) -> asyncio.Task[None] | None:
        """
        Point the resolver at an identity.

        Starts a lookup when the identity differs from the one already
        observed. Must be called from a running event loop.

        Returns:
            The in-flight lookup task, if any
        """
        if identity == self._identity and (self._task is not None or identity is None):
            return self._task if self._task and not self._task.done() else None

        self._identity = identity
        self._generation += 1

        if identity is None:
            self._task = None
            self._set_state(RoleResolution(role=None, loading=False))
            return None

        self._set_state(RoleResolution(role=Role.UNRESOLVED, loading=True))
        self._task = asyncio.create_task(self._run(identity, self._generation))
        return self._task

    async def resolve(self, identity: UUID | None) -> RoleResolution:
        """Observe ``identity`` and wait until its role is settled."""
        task = self.observe(identity)
        if task is not None:
            await task
        return self._state

    async def _run(self, identity: UUID, generation: int) -> None:
        try:
            result = await self._lookup(identity)
        except Exception as e:
            result = RoleLookupFailed(str(e))

        if generation != self._generation or identity != self._identity:
            logger.debug(
                "stale_role_resolution_discarded",
                identity=str(identity),
                current_identity=str(self._identity) if self._identity else None,
            )
            return

        if isinstance(result, RoleLookupFailed):
            logger.warning(
                "role_lookup_fallback",
                identity=str(identity),
                reason="lookup_failed",
                error=result.error,
                role=self._default_role.value,
            )
        elif isinstance(result, RoleNotFound):
            logger.info(
                "role_lookup_fallback",
                identity=str(identity),
                reason="no_role_record",
                role=self._default_role.value,
            )

        self._set_state(
            RoleResolution(role=settle_role(result, self._default_role), loading=False)
        )

    def _set_state(self, state: RoleResolution) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)
