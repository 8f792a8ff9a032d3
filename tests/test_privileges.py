"""Tests for privilege resolution and the fallback policy."""

import asyncio

from finance_tracker.auth import PrivilegeResolver
from finance_tracker.config import get_settings
from finance_tracker.models import (
    ALL_PRIVILEGES_GRANTED,
    NO_PRIVILEGES_GRANTED,
    AuditEventType,
    PrivilegeFallbackPolicy,
    PrivilegeSet,
)
from finance_tracker.services.backend import ServiceUnavailableError


class FailingStorage:
    async def get_privileges(self, user_id):
        raise ServiceUnavailableError("connection refused")


class TestPrivilegeResolver:
    def test_stored_record_wins(self, storage, audit_logger, audit_events):
        record = PrivilegeSet(can_add_expense=True, can_view_reports=True)
        storage.set_privileges("u1", record)
        resolver = PrivilegeResolver(storage, audit_logger=audit_logger)

        assert asyncio.run(resolver.resolve("u1")) == record
        assert audit_events[-1].event_type == AuditEventType.PRIVILEGES_RESOLVED
        assert audit_events[-1].details["granted"] == ["can_add_expense", "can_view_reports"]

    def test_missing_record_falls_back_open(self, storage, audit_logger, audit_events):
        resolver = PrivilegeResolver(storage, audit_logger=audit_logger)

        assert asyncio.run(resolver.resolve("nobody")) == ALL_PRIVILEGES_GRANTED
        assert audit_events[-1].event_type == AuditEventType.PRIVILEGE_FALLBACK
        assert audit_events[-1].details["policy"] == "fail_open"

    def test_lookup_error_is_absorbed(self, audit_logger, audit_events):
        """Callers never see a transport error from resolve()."""
        resolver = PrivilegeResolver(FailingStorage(), audit_logger=audit_logger)

        assert asyncio.run(resolver.resolve("u1")) == ALL_PRIVILEGES_GRANTED
        assert "connection refused" in audit_events[-1].error_message

    def test_no_store_falls_back(self):
        assert asyncio.run(PrivilegeResolver(None).resolve("u1")) == ALL_PRIVILEGES_GRANTED

    def test_fail_closed_policy(self, storage):
        resolver = PrivilegeResolver(storage, policy=PrivilegeFallbackPolicy.FAIL_CLOSED)
        assert resolver.policy == PrivilegeFallbackPolicy.FAIL_CLOSED
        assert asyncio.run(resolver.resolve("nobody")) == NO_PRIVILEGES_GRANTED

    def test_policy_from_environment(self, storage, monkeypatch):
        monkeypatch.setenv("AUTH_PRIVILEGE_FALLBACK", "fail_closed")
        get_settings.cache_clear()

        resolver = PrivilegeResolver(storage)
        assert resolver.fallback == NO_PRIVILEGES_GRANTED
