"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.core.exceptions import AppException, RedirectException
from mediconnect.core.redis_client import CacheManager, get_redis_client
from mediconnect.core.security import identity_from_token
from mediconnect.core.session import SessionStore
from mediconnect.database import get_db
from mediconnect.schemas.roles import GateDecision, Role, Route
from mediconnect.services.access_gate import AccessGate
from mediconnect.services.role_service import RoleRepository, RoleResolver

# A missing token is an empty session, not an error; the gate decides
security = HTTPBearer(auto_error=False)


def get_cache_manager() -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(get_redis_client())


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]


async def get_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> SessionStore:
    """
    Session for the current request, settled from the bearer token.

    An absent, invalid or expired token yields a signed-out session.
    """
    session = SessionStore()
    identity = identity_from_token(credentials.credentials) if credentials else None
    session.set_session(identity)
    return session


async def get_role_resolver(db: DatabaseSession, cache_manager: CacheManagerDep) -> RoleResolver:
    """Role resolver backed by the role records table."""
    return RoleResolver(RoleRepository(db, cache_manager).lookup)


Session = Annotated[SessionStore, Depends(get_session)]
Resolver = Annotated[RoleResolver, Depends(get_role_resolver)]


@dataclass(frozen=True)
class Actor:
    """Identity and role of a caller the gate let through."""

    id: UUID
    role: Role


def require_role(required_role: Role | None = None) -> Callable[..., Awaitable[Actor]]:
    """
    Dependency factory guarding an endpoint with the access gate.

    Args:
        required_role: Role the endpoint is restricted to; None accepts any signed-in caller

    Raises:
        RedirectException: 401 towards sign in, 403 towards the caller's own home
    """

    async def dependency(session: Session, resolver: Resolver) -> Actor:
        gate = AccessGate(session, resolver, required_role=required_role)
        try:
            action = await gate.settle()
        finally:
            gate.close()

        if action.decision == GateDecision.RENDER and session.identity is not None:
            return Actor(id=session.identity, role=resolver.state.role or Role.PATIENT)

        if action.decision == GateDecision.REDIRECT and action.target is not None:
            if action.target == Route.SIGN_IN:
                raise RedirectException(
                    action.target.value, message="Authentication required", status_code=401
                )
            raise RedirectException(action.target.value, message="Not allowed for this role")

        raise AppException("Access decision is still pending", status_code=503)

    return dependency


CurrentActor = Annotated[Actor, Depends(require_role())]
CurrentPatient = Annotated[Actor, Depends(require_role(Role.PATIENT))]
CurrentDoctor = Annotated[Actor, Depends(require_role(Role.DOCTOR))]
CurrentAdmin = Annotated[Actor, Depends(require_role(Role.ADMIN))]
