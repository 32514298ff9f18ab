"""Tests for access decisions."""

import asyncio
from itertools import product
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from httpx import AsyncClient

from mediconnect.core.session import SessionStore
from mediconnect.schemas.roles import GateAction, GateDecision, Role, Route
from mediconnect.services.access_gate import AccessGate, guard, home_for
from mediconnect.services.role_service import RoleFound, RoleNotFound, RoleResolver

IDENTITIES = [None, uuid4()]
ROLES = [None, Role.UNRESOLVED, Role.PATIENT, Role.DOCTOR, Role.ADMIN]
REQUIRED = [None, Role.PATIENT, Role.DOCTOR, Role.ADMIN]


@pytest.mark.parametrize(
    "required_role,identity,role,session_loading,role_loading",
    [
        combo
        for combo in product(REQUIRED, IDENTITIES, ROLES, [False, True], [False, True])
        if combo[3] or combo[4]
    ],
)
def test_guard_suspends_while_loading(required_role, identity, role, session_loading, role_loading):
    action = guard(required_role, identity, role, session_loading, role_loading)
    assert action == GateAction.suspend()


@pytest.mark.parametrize("required_role,role", list(product(REQUIRED, ROLES)))
def test_guard_sends_anonymous_callers_to_sign_in(required_role, role):
    assert guard(required_role, None, role, False, False) == GateAction.redirect(Route.SIGN_IN)


@pytest.mark.parametrize("role", ROLES)
def test_guard_renders_role_agnostic_views_for_any_identity(role):
    assert guard(None, uuid4(), role, False, False) == GateAction.render()


@pytest.mark.parametrize("required_role", [Role.PATIENT, Role.DOCTOR, Role.ADMIN])
def test_guard_renders_matching_role(required_role):
    assert guard(required_role, uuid4(), required_role, False, False) == GateAction.render()


@pytest.mark.parametrize(
    "required_role,role,target",
    [
        (Role.DOCTOR, Role.PATIENT, Route.PATIENT_HOME),
        (Role.ADMIN, Role.PATIENT, Route.PATIENT_HOME),
        (Role.PATIENT, Role.DOCTOR, Route.DOCTOR_HOME),
        (Role.ADMIN, Role.DOCTOR, Route.DOCTOR_HOME),
        (Role.PATIENT, Role.ADMIN, Route.HOME),
        (Role.DOCTOR, Role.ADMIN, Route.HOME),
    ],
)
def test_guard_redirects_mismatched_role_home(required_role, role, target):
    action = guard(required_role, uuid4(), role, False, False)

    assert action.decision == GateDecision.REDIRECT
    assert action.target == target


@pytest.mark.parametrize("role", [None, Role.UNRESOLVED])
def test_guard_suspends_on_settled_but_unresolved_role(role):
    assert guard(Role.DOCTOR, uuid4(), role, False, False) == GateAction.suspend()


def test_home_for_each_role():
    assert home_for(Role.DOCTOR) == Route.DOCTOR_HOME
    assert home_for(Role.PATIENT) == Route.PATIENT_HOME
    assert home_for(Role.ADMIN) == Route.HOME


async def test_gate_follows_session_and_role_changes():
    release = asyncio.Event()

    async def lookup(_identity):
        await release.wait()
        return RoleFound(Role.DOCTOR)

    session = SessionStore()
    gate = AccessGate(session, RoleResolver(lookup), required_role=Role.DOCTOR)
    decisions = []
    gate.subscribe(decisions.append)

    assert gate.action == GateAction.suspend()

    session.set_session(uuid4())
    assert gate.action == GateAction.suspend()

    release.set()
    assert await gate.settle() == GateAction.render()

    session.clear()
    assert gate.action == GateAction.redirect(Route.SIGN_IN)

    assert decisions == [GateAction.render(), GateAction.redirect(Route.SIGN_IN)]
    gate.close()


async def test_gate_never_uses_previous_identitys_role():
    doctor, patient = uuid4(), uuid4()
    release_patient = asyncio.Event()

    async def lookup(identity):
        if identity == doctor:
            return RoleFound(Role.DOCTOR)
        await release_patient.wait()
        return RoleNotFound()

    session = SessionStore(identity=doctor, loading=False)
    gate = AccessGate(session, RoleResolver(lookup), required_role=Role.DOCTOR)
    assert await gate.settle() == GateAction.render()

    session.set_session(patient)
    assert gate.action == GateAction.suspend()

    release_patient.set()
    assert await gate.settle() == GateAction.redirect(Route.PATIENT_HOME)
    gate.close()


async def test_gate_waits_while_session_reloads():
    session = SessionStore(identity=uuid4(), loading=False)
    gate = AccessGate(
        session, RoleResolver(AsyncMock(return_value=RoleFound(Role.PATIENT))), Role.PATIENT
    )
    assert await gate.settle() == GateAction.render()

    session.begin_loading()
    assert gate.action == GateAction.suspend()
    gate.close()


async def test_closed_gate_stops_listening():
    session = SessionStore(identity=uuid4(), loading=False)
    gate = AccessGate(session, RoleResolver(AsyncMock(return_value=RoleFound(Role.PATIENT))))
    await gate.settle()
    gate.close()

    session.clear()

    assert gate.action == GateAction.render()


@pytest.mark.asyncio
async def test_access_endpoint_without_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/access", params={"required_role": "doctor"})

    assert response.status_code == 200
    assert response.json() == {"decision": "redirect", "target": "sign_in"}


@pytest.mark.asyncio
async def test_access_endpoint_with_invalid_token(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/access", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 200
    assert response.json()["target"] == "sign_in"


@pytest.mark.asyncio
async def test_access_endpoint_redirects_patient_from_doctor_view(
    client: AsyncClient, make_user
) -> None:
    patient = await make_user()

    response = await client.get(
        "/api/v1/access", params={"required_role": "doctor"}, headers=patient["headers"]
    )

    assert response.json() == {"decision": "redirect", "target": "patient_home"}


@pytest.mark.asyncio
async def test_access_endpoint_renders_for_matching_role(client: AsyncClient, make_doctor) -> None:
    doctor = await make_doctor()

    response = await client.get(
        "/api/v1/access", params={"required_role": "doctor"}, headers=doctor["headers"]
    )

    assert response.json() == {"decision": "render", "target": None}


@pytest.mark.asyncio
async def test_account_without_role_record_is_a_patient(client: AsyncClient, make_user) -> None:
    user = await make_user(role=None)

    response = await client.get("/api/v1/users/me/role", headers=user["headers"])

    assert response.status_code == 200
    assert response.json() == {"role": "patient", "loading": False}


@pytest.mark.asyncio
async def test_dashboard_requires_sign_in(client: AsyncClient) -> None:
    response = await client.get("/api/v1/dashboard")

    assert response.status_code == 401
    assert response.json()["redirect_to"] == "sign_in"


@pytest.mark.asyncio
async def test_dashboard_points_to_role_home(client: AsyncClient, make_doctor) -> None:
    doctor = await make_doctor()

    response = await client.get("/api/v1/dashboard", headers=doctor["headers"])

    assert response.status_code == 200
    assert response.json() == {"role": "doctor", "target": "doctor_home"}


@pytest.mark.asyncio
async def test_doctor_endpoint_rejects_patient_with_redirect(
    client: AsyncClient, make_user
) -> None:
    patient = await make_user()

    response = await client.get("/api/v1/appointments/doctor", headers=patient["headers"])

    assert response.status_code == 403
    assert response.json()["redirect_to"] == "patient_home"
