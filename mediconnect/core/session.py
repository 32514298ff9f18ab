"""Session store holding the authenticated identity."""

from collections.abc import Callable
from uuid import UUID

import structlog

logger = structlog.get_logger()

SessionListener = Callable[["SessionStore"], None]


class SessionStore:
    """
    Current identity plus a loading flag, with change notification.

    A store starts in the loading state until the identity is known. Listeners
    are called synchronously on every change, in subscription order.
    """

    def __init__(self, identity: UUID | None = None, loading: bool = True):
        """Initialize store, optionally already settled on an identity."""
        self._identity = identity
        self._loading = loading
        self._listeners: list[SessionListener] = []

    @property
    def identity(self) -> UUID | None:
        """Authenticated identity, or None when signed out."""
        return self._identity

    @property
    def loading(self) -> bool:
        """True until the identity has been established."""
        return self._loading

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_session(self, identity: UUID | None) -> None:
        """Settle the store on an identity (None means signed out)."""
        changed = self._loading or identity != self._identity
        self._identity = identity
        self._loading = False
        if changed:
            logger.debug("session_changed", identity=str(identity) if identity else None)
            self._notify()

    def begin_loading(self) -> None:
        """Mark the identity as being (re)established."""
        if not self._loading:
            self._loading = True
            self._notify()

    def clear(self) -> None:
        """Sign out."""
        self.set_session(None)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
