"""Authentication, privileges, route guarding and navigation."""

from finance_tracker.auth.context import AuthContext, AuthState
from finance_tracker.auth.guard import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    ROUTES,
    GuardState,
    RouteGuard,
    guard_state,
    landing_path,
)
from finance_tracker.auth.navigation import NAV_ENTRIES, NavEntry, NavItem, visible_entries
from finance_tracker.auth.privileges import PrivilegeResolver
from finance_tracker.auth.session_backends import (
    INVALID_TEST_CREDENTIALS_MESSAGE,
    MOCK_USER_ID,
    TEST_EMAIL,
    TEST_PASSWORD,
    LocalSessionBackend,
    LocalStorage,
    RemoteSessionBackend,
    SessionBackend,
    create_session_backend,
)

__all__ = [
    "AuthContext",
    "AuthState",
    "DASHBOARD_PATH",
    "LOGIN_PATH",
    "ROUTES",
    "GuardState",
    "RouteGuard",
    "guard_state",
    "landing_path",
    "NAV_ENTRIES",
    "NavEntry",
    "NavItem",
    "visible_entries",
    "PrivilegeResolver",
    "INVALID_TEST_CREDENTIALS_MESSAGE",
    "MOCK_USER_ID",
    "TEST_EMAIL",
    "TEST_PASSWORD",
    "LocalSessionBackend",
    "LocalStorage",
    "RemoteSessionBackend",
    "SessionBackend",
    "create_session_backend",
]
