"""
Tests for FinanceTracker models

Test strategy:
1. Unit tests for individual components (models, policies)
2. Integration tests for flows (with in-memory backends)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models import (
    ALL_PRIVILEGES_GRANTED,
    DEFAULT_PRIVILEGE_POLICY,
    NO_PRIVILEGES_GRANTED,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Bill,
    Category,
    CategoryDirection,
    Identity,
    Person,
    PrivilegeFallbackPolicy,
    PrivilegeKey,
    PrivilegeSet,
    Session,
    Transaction,
    TransactionType,
    fallback_privileges,
)


def expense_type() -> TransactionType:
    return TransactionType(
        id="t1",
        name="Groceries",
        category_id="c1",
        category=Category(id="c1", name="Food & Dining", direction=CategoryDirection.EXPENSE),
    )


class TestAuthModels:
    """Tests for identity, session and privilege models."""

    def test_identity_display_name(self):
        """The greeting name is the local part of the email."""
        identity = Identity(id="u1", email="alice@example.com")
        assert identity.display_name == "alice"

    def test_identity_is_immutable(self):
        identity = Identity(id="u1", email="alice@example.com")
        with pytest.raises(ValueError):
            identity.email = "bob@example.com"

    def test_session_ignores_unknown_fields(self):
        """Auth service payloads carry extra keys we do not model."""
        session = Session(
            access_token="a",
            refresh_token="r",
            user={"id": "u1", "email": "a@b.com", "app_metadata": {}},
            provider_token=None,
        )
        assert session.user.id == "u1"
        assert session.expires_in == 3600

    def test_privilege_set_defaults_to_nothing(self):
        privileges = PrivilegeSet()
        assert not any(privileges.allows(key) for key in PrivilegeKey)

    def test_privilege_allows_by_key_or_string(self):
        privileges = PrivilegeSet(can_view_reports=True)
        assert privileges.allows(PrivilegeKey.VIEW_REPORTS)
        assert privileges.allows("can_view_reports")
        assert not privileges.allows(PrivilegeKey.UPLOAD_BILLS)

    def test_default_policy_is_fail_open(self):
        """The documented default grants everything."""
        assert DEFAULT_PRIVILEGE_POLICY == PrivilegeFallbackPolicy.FAIL_OPEN
        assert fallback_privileges(DEFAULT_PRIVILEGE_POLICY) == ALL_PRIVILEGES_GRANTED

    def test_fail_closed_grants_nothing(self):
        assert fallback_privileges("fail_closed") == NO_PRIVILEGES_GRANTED


class TestFinanceModels:
    """Tests for the relational finance models."""

    def test_person_email_is_normalized(self):
        person = Person(email="  Alice@Example.COM ")
        assert person.email == "alice@example.com"

    def test_transaction_rejects_non_positive_amount(self):
        """Amounts are always positive; the category gives the sign."""
        with pytest.raises(ValueError):
            Transaction(person_id="p", type_id="t", amount=Decimal("0"), transaction_date=date.today())
        with pytest.raises(ValueError):
            Transaction(person_id="p", type_id="t", amount=Decimal("-5"), transaction_date=date.today())

    def test_transaction_accepts_date_alias(self):
        """Rows read from the backend use the column name `date`."""
        tx = Transaction(person_id="p", type_id="t", amount="12.50", date="2024-06-01")
        assert tx.transaction_date == date(2024, 6, 1)

    def test_transaction_direction_comes_from_category(self):
        tx = Transaction(
            person_id="p",
            type_id="t1",
            amount=Decimal("12.50"),
            transaction_date=date(2024, 6, 1),
            transaction_type=expense_type(),
        )
        assert tx.direction == CategoryDirection.EXPENSE
        assert tx.category_name == "Food & Dining"
        assert tx.signed_amount == Decimal("-12.50")

    def test_transaction_without_join_has_no_direction(self):
        tx = Transaction(person_id="p", type_id="t1", amount="1.00", transaction_date=date.today())
        assert tx.direction is None
        assert tx.signed_amount == Decimal("0")

    def test_transaction_row_excludes_join(self):
        tx = Transaction(
            person_id="p",
            type_id="t1",
            amount=Decimal("12.50"),
            transaction_date=date(2024, 6, 1),
            transaction_type=expense_type(),
        )
        row = tx.to_row()
        assert row["date"] == "2024-06-01"
        assert row["amount"] == "12.50"
        assert "type" not in row and "transaction_type" not in row
        assert row["bill_id"] is None

    def test_bill_extension_normalized(self):
        bill = Bill(person_id="p", name="r.PNG", path="u/1.png", mime_type="image/png", extension=".PNG")
        assert bill.extension == "png"
        assert bill.to_row()["path"] == "u/1.png"


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SIGNED_IN,
            description="User signed in",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_added(
            transaction_id="tx-1",
            direction="expense",
            amount="12.50",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["entity_id"] == "tx-1"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"direction": "expense", "amount": "12.50"}

    def test_privilege_fallback_is_a_warning(self):
        """Silent fallbacks are never surfaced, but are always visible in logs."""
        event = AuditEventBuilder.privilege_fallback("u1", "fail_open", "no privilege record")
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "no privilege record"

    def test_sign_in_rejected_has_no_entity(self):
        event = AuditEventBuilder.sign_in_rejected("x@y.com", "local", "bad password")
        assert event.entity_id is None
        assert event.is_user_action


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
