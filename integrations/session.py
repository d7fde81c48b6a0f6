"""
Client-side session state.

Holds the acting user and their permissions and tells subscribers when
the session changes. Teardown is single-flight: when several requests
fail with 401 at once, subscribers hear about it exactly once.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Session:
    """Authenticated actor as seen by the client."""
    actor_id: str
    permissions: frozenset[str] = field(default_factory=frozenset)
    display_name: Optional[str] = None


SessionListener = Callable[[Optional[Session]], None]


class SessionManager:
    """
    Current session plus a subscriber list.

    Subscribers receive the new Session on login and None on teardown.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._session: Optional[Session] = None
        self._tearing_down = False
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def has_permission(self, permission: str) -> bool:
        session = self._session
        return session is not None and permission in session.permissions

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Function that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _broadcast(self, session: Optional[Session]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(session)
            except Exception as e:
                logger.error("session_listener_failed", error=str(e), listener=getattr(listener, "__name__", repr(listener)))

    def login(self, actor_id: str, permissions: Optional[set[str]] = None, display_name: Optional[str] = None) -> Session:
        session = Session(
            actor_id=actor_id,
            permissions=frozenset(permissions or ()),
            display_name=display_name,
        )
        with self._lock:
            self._session = session
            self._tearing_down = False
        logger.info("session_started", actor_id=actor_id, permissions=len(session.permissions))
        self._broadcast(session)
        return session

    def invalidate(self, reason: str = "session_expired") -> bool:
        """
        Tear the session down.

        Returns:
            True for the call that performed the teardown, False when
            there was no session or another call is already tearing it down
        """
        with self._lock:
            if self._session is None or self._tearing_down:
                return False
            self._tearing_down = True
            actor_id = self._session.actor_id
            self._session = None

        try:
            logger.warning("session_invalidated", actor_id=actor_id, reason=reason)
            self._broadcast(None)
        finally:
            with self._lock:
                self._tearing_down = False
        return True

    def logout(self) -> bool:
        return self.invalidate("logout")
