"""
Auth Context

One AuthContext per user session. It is the single owner of the current
identity, session and privilege set; pages, the route guard and the
navigation receive it explicitly instead of reaching for global state.

Lifecycle:

    UNINITIALIZED --initialize()--> RESOLVING --> READY
    READY --sign_in/sign_up--> RESOLVING --> READY

CRITICAL: Privileges for a new identity are resolved before the context
leaves RESOLVING. No consumer can observe an identity without
privileges while loading is False.
"""

from enum import Enum
from typing import Callable, Optional

from finance_tracker.audit import AuditLogger
from finance_tracker.auth.privileges import PrivilegeResolver
from finance_tracker.auth.session_backends import SessionBackend
from finance_tracker.models.auth import Identity, PrivilegeSet, Session
from finance_tracker.services.backend import AuthenticationError


AuthListener = Callable[["AuthContext"], None]


class AuthState(str, Enum):
    """Where the context is in its lifecycle."""
    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"


class AuthContext:
    """
    Session object shared by every consumer of one user session.

    Usage:
        context = AuthContext(backend, resolver)
        await context.initialize()
        await context.sign_in("test@example.com", "password123")
    """

    def __init__(
        self,
        backend: SessionBackend,
        resolver: PrivilegeResolver,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._resolver = resolver
        self._audit = audit_logger or AuditLogger()

        self._state = AuthState.UNINITIALIZED
        self._session: Optional[Session] = None
        self._privileges: Optional[PrivilegeSet] = None
        self._listeners: list[AuthListener] = []
        # Bumped on every identity change; stale resolutions are dropped
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state != AuthState.READY

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def identity(self) -> Optional[Identity]:
        return self._session.user if self._session else None

    @property
    def privileges(self) -> Optional[PrivilegeSet]:
        return self._privileges

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def mode(self) -> str:
        return self._backend.mode

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Call listener(context) on every identity change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                self._audit.log_error(
                    error_type="auth_listener_failed",
                    error_message=str(e),
                    details={"listener": repr(listener)},
                )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore any existing session and resolve its privileges."""
        if self._state != AuthState.UNINITIALIZED:
            return
        self._state = AuthState.RESOLVING
        try:
            session = await self._backend.restore()
        except Exception as e:
            self._audit.log_external_service_error(
                service=f"{self.mode}_session",
                operation="restore",
                error_message=str(e),
            )
            session = None

        await self._adopt(session)
        if session is not None:
            self._audit.log_session_restored(user_id=session.user.id, mode=self.mode)

    async def sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            AuthenticationError: Credentials rejected; state is unchanged
        """
        try:
            session = await self._backend.sign_in(email, password)
        except AuthenticationError as e:
            self._audit.log_sign_in_rejected(email=email, mode=self.mode, reason=str(e))
            raise

        await self._adopt(session)
        self._audit.log_signed_in(user_id=session.user.id, email=session.user.email, mode=self.mode)
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """
        Returns:
            The new session, or None while the account awaits confirmation
        """
        session = await self._backend.sign_up(email, password)
        if session is None:
            return None
        await self._adopt(session)
        self._audit.log_signed_up(user_id=session.user.id, email=session.user.email, mode=self.mode)
        return session

    async def sign_out(self) -> None:
        """Clear the session. Calling it while signed out does nothing harmful."""
        previous = self.identity
        await self._backend.sign_out()
        await self._adopt(None)
        if previous is not None:
            self._audit.log_signed_out(user_id=previous.id, mode=self.mode)

    async def refresh_privileges(self) -> None:
        """Re-read privileges for the current identity; no-op when signed out."""
        identity = self.identity
        if identity is None:
            return
        generation = self._generation
        privileges = await self._resolver.resolve(identity.id)
        if generation == self._generation:
            self._privileges = privileges

    async def _adopt(self, session: Optional[Session]) -> None:
        """Replace the session wholesale and resolve its privileges."""
        previous_id = self.identity.id if self.identity else None
        self._generation += 1
        generation = self._generation
        self._state = AuthState.RESOLVING

        privileges = None
        if session is not None:
            privileges = await self._resolver.resolve(session.user.id)

        if generation != self._generation:
            # A later sign-in/out superseded this one
            return

        self._session = session
        self._privileges = privileges
        self._state = AuthState.READY

        new_id = session.user.id if session else None
        if new_id != previous_id:
            self._notify()
