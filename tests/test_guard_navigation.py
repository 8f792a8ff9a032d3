"""Tests for the route guard state machine and the privilege-filtered sidebar."""

import asyncio

import pytest

from finance_tracker.auth import (
    NAV_ENTRIES,
    ROUTES,
    TEST_EMAIL,
    TEST_PASSWORD,
    AuthContext,
    GuardState,
    LocalSessionBackend,
    LocalStorage,
    PrivilegeResolver,
    RouteGuard,
    landing_path,
    visible_entries,
)
from finance_tracker.models import AuditEventType, PrivilegeKey, PrivilegeSet


@pytest.fixture
def context(tmp_path, storage):
    return AuthContext(
        LocalSessionBackend(LocalStorage(tmp_path / "local.json")),
        PrivilegeResolver(storage),
    )


@pytest.fixture
def redirects():
    return []


@pytest.fixture
def guard(redirects, audit_logger):
    return RouteGuard(on_redirect=redirects.append, audit_logger=audit_logger)


class TestRouteGuard:
    def test_checking_while_loading_never_redirects(self, context, guard, redirects):
        assert guard.evaluate(context, "/dashboard") is GuardState.CHECKING
        assert guard.evaluate(context, "/dashboard") is GuardState.CHECKING
        assert redirects == []

    def test_unauthorized_redirects_once(self, context, guard, redirects, audit_events):
        asyncio.run(context.initialize())

        for _ in range(3):
            assert guard.evaluate(context, "/dashboard") is GuardState.UNAUTHORIZED

        assert redirects == ["/login"]
        redirected = [e for e in audit_events if e.event_type == AuditEventType.ROUTE_REDIRECTED]
        assert len(redirected) == 1
        assert redirected[0].details == {"from": "/dashboard", "to": "/login"}

    def test_authorized_with_identity(self, context, guard, redirects):
        asyncio.run(context.initialize())
        asyncio.run(context.sign_in(TEST_EMAIL, TEST_PASSWORD))
        assert guard.evaluate(context) is GuardState.AUTHORIZED
        assert redirects == []

    def test_sign_out_redirects_exactly_once(self, context, guard, redirects):
        asyncio.run(context.initialize())
        asyncio.run(context.sign_in(TEST_EMAIL, TEST_PASSWORD))
        guard.evaluate(context)

        asyncio.run(context.sign_out())
        guard.evaluate(context)
        guard.evaluate(context)

        assert redirects == ["/login"]
        assert context.identity is None
        assert context.privileges is None

    def test_new_identity_rearms_redirect(self, context, guard, redirects):
        asyncio.run(context.initialize())
        guard.evaluate(context)
        asyncio.run(context.sign_in(TEST_EMAIL, TEST_PASSWORD))
        guard.evaluate(context)
        asyncio.run(context.sign_out())
        guard.evaluate(context)

        assert redirects == ["/login", "/login"]

    def test_custom_login_path(self, context, redirects):
        guard = RouteGuard(on_redirect=redirects.append, login_path="/signin")
        asyncio.run(context.initialize())
        guard.evaluate(context)
        assert redirects == ["/signin"]
        assert guard.last_state is GuardState.UNAUTHORIZED


class TestLandingPath:
    def test_landing_follows_identity(self, context):
        assert landing_path(context) is None
        asyncio.run(context.initialize())
        assert landing_path(context) == "/login"
        asyncio.run(context.sign_in(TEST_EMAIL, TEST_PASSWORD))
        assert landing_path(context) == "/dashboard"


class TestVisibleEntries:
    def test_entries_and_routes(self):
        assert [e.label for e in NAV_ENTRIES] == [
            "Dashboard",
            "Add Expense",
            "Add Income",
            "Reports & Analytics",
            "Upload Bills",
            "Download Reports",
        ]
        assert {e.path for e in NAV_ENTRIES} <= set(ROUTES.values())

    def test_absent_privileges_show_everything(self):
        items = visible_entries("/dashboard", None)
        assert len(items) == len(NAV_ENTRIES)

    def test_keyed_entries_follow_privileges(self):
        privileges = PrivilegeSet(can_add_expense=True, can_download_reports=True)
        labels = [i.label for i in visible_entries("/dashboard", privileges)]
        assert labels == ["Dashboard", "Add Expense", "Download Reports"]

    def test_unkeyed_entry_always_visible(self):
        labels = [i.label for i in visible_entries("/dashboard", PrivilegeSet())]
        assert labels == ["Dashboard"]

    @pytest.mark.parametrize("key", list(PrivilegeKey))
    def test_each_key_controls_one_entry(self, key):
        privileges = PrivilegeSet(**{key.value: True})
        items = visible_entries("/", privileges)
        assert len(items) == 2
        assert items[1].path == next(e.path for e in NAV_ENTRIES if e.privilege == key)

    def test_single_active_entry_by_exact_path(self):
        items = visible_entries("/dashboard/reports", None)
        active = [i for i in items if i.active]
        assert [i.label for i in active] == ["Reports & Analytics"]

    def test_no_prefix_matching(self):
        items = visible_entries("/dashboard/reports/extra", None)
        assert not any(i.active for i in items)

    def test_hidden_entry_is_never_active(self):
        items = visible_entries("/dashboard/bills", PrivilegeSet())
        assert not any(i.active for i in items)
