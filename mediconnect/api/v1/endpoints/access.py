"""Access decision endpoints for clients that render protected views."""

from fastapi import APIRouter, Query

from mediconnect.dependencies import CurrentActor, Resolver, Session
from mediconnect.schemas.roles import DashboardResponse, GateAction, Role
from mediconnect.services.access_gate import AccessGate, home_for

router = APIRouter(tags=["Access"])


@router.get("/access", response_model=GateAction)
async def check_access(
    session: Session,
    resolver: Resolver,
    required_role: Role | None = Query(None),
) -> GateAction:
    """
    Decide whether the caller may open a view restricted to ``required_role``.

    Always answers 200; the decision itself says render or where to redirect.
    """
    gate = AccessGate(session, resolver, required_role=required_role)
    try:
        return await gate.settle()
    finally:
        gate.close()


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(current_actor: CurrentActor) -> DashboardResponse:
    """Where the caller's dashboard lives, based on their role."""
    return DashboardResponse(role=current_actor.role, target=home_for(current_actor.role))
