"""Access decisions for protected views."""

from collections.abc import Callable
from uuid import UUID

import structlog

from mediconnect.core.session import SessionStore
from mediconnect.schemas.roles import GateAction, Role, RoleResolution, Route
from mediconnect.services.role_service import RoleResolver

logger = structlog.get_logger()

GateListener = Callable[[GateAction], None]

HOME_ROUTES: dict[Role, Route] = {
    Role.DOCTOR: Route.DOCTOR_HOME,
    Role.PATIENT: Route.PATIENT_HOME,
}


def home_for(role: Role) -> Route:
    """Canonical landing route for a resolved role."""
    return HOME_ROUTES.get(role, Route.HOME)


def guard(
    required_role: Role | None,
    identity: UUID | None,
    role: Role | None,
    session_loading: bool,
    role_loading: bool,
) -> GateAction:
    """
    Decide whether a protected view may render.

    Args:
        required_role: Role the view is restricted to, or None for any signed-in actor
        identity: Authenticated identity, if any
        role: Resolved role of that identity
        session_loading: Session store still establishing the identity
        role_loading: Role lookup still in flight

    Returns:
        Render, Redirect(target) or Suspend
    """
    if session_loading or role_loading:
        return GateAction.suspend()

    if identity is None:
        return GateAction.redirect(Route.SIGN_IN)

    if required_role is None:
        return GateAction.render()

    if role is None or not role.is_resolved:
        # Settled flags with no concrete role; wait for the next change
        return GateAction.suspend()

    if role != required_role:
        return GateAction.redirect(home_for(role))

    return GateAction.render()


class AccessGate:
    """
    Keeps an access decision in sync with a session and a role resolver.

    The gate starts role resolution whenever the session settles on a new
    identity and recomputes its action after every session or role change.
    """

    def __init__(
        self,
        session: SessionStore,
        resolver: RoleResolver,
        required_role: Role | None = None,
    ):
        """Wire the gate to its session and resolver."""
        self.session = session
        self.resolver = resolver
        self.required_role = required_role
        self._listeners: list[GateListener] = []
        self._action = self._evaluate()
        self._unsubscribers = [
            session.subscribe(self._on_session_change),
            resolver.subscribe(self._on_role_change),
        ]
        if not session.loading:
            self.resolver.observe(session.identity)
            self._refresh()

    @property
    def action(self) -> GateAction:
        """Latest decision."""
        return self._action

    def subscribe(self, listener: GateListener) -> Callable[[], None]:
        """Register a listener called whenever the decision changes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def settle(self) -> GateAction:
        """Wait for any in-flight role lookup and return the resulting decision."""
        task = self.resolver.observe(self.session.identity) if not self.session.loading else None
        if task is not None:
            await task
        return self._action

    def close(self) -> None:
        """Detach from the session and resolver."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_session_change(self, session: SessionStore) -> None:
        if not session.loading:
            self.resolver.observe(session.identity)
        self._refresh()

    def _on_role_change(self, _resolution: RoleResolution) -> None:
        self._refresh()

    def _evaluate(self) -> GateAction:
        resolution = self.resolver.state
        role_loading = resolution.loading
        # A resolution still describing another identity counts as loading
        if not self.session.loading and self.resolver.identity != self.session.identity:
            role_loading = True
        return guard(
            self.required_role,
            self.session.identity,
            resolution.role,
            self.session.loading,
            role_loading,
        )

    def _refresh(self) -> None:
        action = self._evaluate()
        if action == self._action:
            return
        self._action = action
        logger.debug(
            "access_decision_changed",
            decision=action.decision.value,
            target=action.target.value if action.target else None,
            required_role=self.required_role.value if self.required_role else None,
        )
        for listener in list(self._listeners):
            listener(action)
