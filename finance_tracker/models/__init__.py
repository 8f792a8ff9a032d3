"""
Data Models Package

This package contains all Pydantic models used in FinanceTracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.auth import (
    ALL_PRIVILEGES_GRANTED,
    DEFAULT_PRIVILEGE_POLICY,
    NO_PRIVILEGES_GRANTED,
    Identity,
    PrivilegeFallbackPolicy,
    PrivilegeKey,
    PrivilegeSet,
    Session,
    fallback_privileges,
)
from finance_tracker.models.finance import (
    Bill,
    Category,
    CategoryDirection,
    Person,
    Transaction,
    TransactionType,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Auth models
    "ALL_PRIVILEGES_GRANTED",
    "DEFAULT_PRIVILEGE_POLICY",
    "NO_PRIVILEGES_GRANTED",
    "Identity",
    "PrivilegeFallbackPolicy",
    "PrivilegeKey",
    "PrivilegeSet",
    "Session",
    "fallback_privileges",
    # Finance models
    "Bill",
    "Category",
    "CategoryDirection",
    "Person",
    "Transaction",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
