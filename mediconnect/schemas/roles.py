"""Role, route and access-gate schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Role enumeration. UNRESOLVED is transient and never persisted."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
    UNRESOLVED = "unresolved"

    @property
    def is_resolved(self) -> bool:
        """True for the three concrete roles."""
        return self is not Role.UNRESOLVED


# Roles that may be stored in a role record
PERSISTED_ROLES = frozenset({Role.PATIENT, Role.DOCTOR, Role.ADMIN})


class Route(str, Enum):
    """Logical destinations the access gate can send a caller to."""

    SIGN_IN = "sign_in"
    DOCTOR_HOME = "doctor_home"
    PATIENT_HOME = "patient_home"
    HOME = "home"


class GateDecision(str, Enum):
    """Outcome kinds of an access decision."""

    RENDER = "render"
    REDIRECT = "redirect"
    SUSPEND = "suspend"


class RoleResolution(BaseModel):
    """Role of the current identity and whether it is still being looked up."""

    model_config = ConfigDict(frozen=True)

    role: Role | None = None
    loading: bool = False


class GateAction(BaseModel):
    """Access decision for a protected view."""

    model_config = ConfigDict(frozen=True)

    decision: GateDecision
    target: Route | None = None

    @classmethod
    def render(cls) -> "GateAction":
        return cls(decision=GateDecision.RENDER)

    @classmethod
    def suspend(cls) -> "GateAction":
        return cls(decision=GateDecision.SUSPEND)

    @classmethod
    def redirect(cls, target: Route) -> "GateAction":
        return cls(decision=GateDecision.REDIRECT, target=target)


class DashboardResponse(BaseModel):
    """Where the caller's dashboard lives."""

    role: Role
    target: Route
