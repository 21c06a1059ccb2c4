import logging
import threading
from typing import Any, Optional

from supabase import Client

from .roles import ResolvedIdentity, RoleResolutionError, resolve_role
from .session import SessionClient, SessionError

logger = logging.getLogger(__name__)


class AuthState:
    """
    Process-wide holder of the signed-in identity and its role.

    The role is re-resolved on every auth event the SDK emits; a sign-out (or
    any event without a session) clears the identity.
    """

    def __init__(self, supabase: Client, session_client: Optional[SessionClient] = None):
        self.supabase = supabase
        self.sessions = session_client or SessionClient(supabase)
        self.user: Any = None
        self.identity: Optional[ResolvedIdentity] = None
        self.loading = True
        self.error: Optional[str] = None
        self._subscription = None
        self._lock = threading.Lock()

    @property
    def role(self) -> Optional[str]:
        return self.identity.role if self.identity else None

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    def start(self) -> None:
        try:
            session = self.sessions.get_session()
        except SessionError as exc:
            self._fail(str(exc))
        else:
            self._apply(session)
        self._subscription = self.sessions.on_auth_state_change(self._on_event)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_event(self, event: str, session: Any) -> None:
        logger.debug("Auth event %s", event)
        self._apply(session)

    def _apply(self, session: Any) -> None:
        with self._lock:
            self.loading = True
            user = getattr(session, "user", None) if session else None
            if user is None:
                self.user = None
                self.identity = None
                self.error = None
                self.loading = False
                return

            self.user = user
            try:
                self.identity = resolve_role(self.supabase, user.id, getattr(user, "email", None))
                self.error = None
            except RoleResolutionError as exc:
                self.identity = None
                self.error = str(exc)
            self.loading = False

    def _fail(self, message: str) -> None:
        with self._lock:
            self.user = None
            self.identity = None
            self.error = message
            self.loading = False
