"""
Route Guard

Gates protected pages on the auth context.

    CHECKING      context still loading; show a placeholder, never redirect
    AUTHORIZED    an identity is present
    UNAUTHORIZED  no identity and loading finished; redirect to login

The redirect fires once per transition into UNAUTHORIZED. Leaving that
state (a new sign-in, or a fresh loading window) re-arms it, so Streamlit
re-runs of the same page never loop on the redirect.
"""

from enum import Enum
from typing import Callable, Optional

from finance_tracker.audit import AuditLogger
from finance_tracker.auth.context import AuthContext


LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

ROUTES = {
    "login": LOGIN_PATH,
    "dashboard": DASHBOARD_PATH,
    "add_income": "/dashboard/income/add",
    "add_expense": "/dashboard/expenses/add",
    "reports": "/dashboard/reports",
    "bills": "/dashboard/bills",
    "downloads": "/dashboard/downloads",
}


class GuardState(str, Enum):
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


def guard_state(context: AuthContext) -> GuardState:
    """Pure mapping from the context to a guard state."""
    if context.loading:
        return GuardState.CHECKING
    if context.identity is not None:
        return GuardState.AUTHORIZED
    return GuardState.UNAUTHORIZED


def landing_path(context: AuthContext) -> Optional[str]:
    """Where the root page sends a viewer; None while still loading."""
    if context.loading:
        return None
    return DASHBOARD_PATH if context.identity is not None else LOGIN_PATH


class RouteGuard:
    """
    Stateful wrapper around guard_state() that owns the redirect side effect.

    Usage:
        guard = RouteGuard(on_redirect=lambda path: navigate(path))
        if guard.evaluate(context, current_path) is GuardState.AUTHORIZED:
            render_page()
    """

    def __init__(
        self,
        on_redirect: Callable[[str], None],
        login_path: str = LOGIN_PATH,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._on_redirect = on_redirect
        self._login_path = login_path
        self._audit = audit_logger or AuditLogger()
        self._redirected = False
        self._last_state: Optional[GuardState] = None

    @property
    def last_state(self) -> Optional[GuardState]:
        return self._last_state

    def evaluate(self, context: AuthContext, current_path: str = "") -> GuardState:
        state = guard_state(context)
        self._last_state = state

        if state is not GuardState.UNAUTHORIZED:
            self._redirected = False
            return state

        if not self._redirected:
            self._redirected = True
            self._audit.log_route_redirected(from_path=current_path, to_path=self._login_path)
            self._on_redirect(self._login_path)
        return state
