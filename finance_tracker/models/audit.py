"""
Audit Models for FinanceTracker

Every significant action (sign-in, privilege resolution, writes to the
remote backend, uploads, exports) produces one AuditEvent. Events go to
the structured log; they are the record of what a user session did.

DESIGN DECISION: Entity ids are plain strings because identity ids come
from the auth service and are not guaranteed to be UUIDs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.auth import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session lifecycle
    SESSION_RESTORED = "session_restored"
    SIGNED_IN = "signed_in"
    SIGN_IN_REJECTED = "sign_in_rejected"
    SIGNED_UP = "signed_up"
    SIGNED_OUT = "signed_out"

    # Authorization
    PRIVILEGES_RESOLVED = "privileges_resolved"
    PRIVILEGE_FALLBACK = "privilege_fallback"
    ROUTE_REDIRECTED = "route_redirected"

    # Data writes
    PERSON_ENSURED = "person_ensured"
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_FAILED = "transaction_failed"

    # Files
    BILL_UPLOADED = "bill_uploaded"
    BILL_UPLOAD_FAILED = "bill_upload_failed"
    EXPORT_GENERATED = "export_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Maps onto the structlog level an event is written at."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One entry in a session's audit trail."""

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utcnow)
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What the event is about: "user", "person", "transaction" or "bill"
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    # Shared by every event of one form submit or upload batch
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Flat JSON-safe mapping for structlog."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.signed_in(user_id, email, mode)
        event = AuditEventBuilder.transaction_added(tx_id, "expense", "12.50", cid)
    """

    @staticmethod
    def session_restored(user_id: str, mode: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESTORED,
            entity_type="user",
            entity_id=user_id,
            description="Existing session restored",
            details={"mode": mode},
        )

    @staticmethod
    def signed_in(user_id: str, email: str, mode: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed in: {email}",
            details={"email": email, "mode": mode},
            is_user_action=True,
        )

    @staticmethod
    def sign_in_rejected(email: str, mode: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGN_IN_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Sign-in rejected for {email}",
            details={"email": email, "mode": mode},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def signed_up(user_id: str, email: str, mode: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_UP,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed up: {email}",
            details={"email": email, "mode": mode},
            is_user_action=True,
        )

    @staticmethod
    def signed_out(user_id: Optional[str], mode: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_OUT,
            entity_type="user",
            entity_id=user_id,
            description="User signed out",
            details={"mode": mode},
            is_user_action=True,
        )

    @staticmethod
    def privileges_resolved(user_id: str, granted: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRIVILEGES_RESOLVED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=user_id,
            description=f"Privileges resolved: {len(granted)} granted",
            details={"granted": granted},
        )

    @staticmethod
    def privilege_fallback(
        user_id: str,
        policy: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRIVILEGE_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description=f"Privilege record unavailable, applied {policy} default",
            details={"policy": policy},
            error_message=reason,
        )

    @staticmethod
    def route_redirected(from_path: Optional[str], to_path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROUTE_REDIRECTED,
            severity=AuditSeverity.DEBUG,
            description=f"Unauthenticated viewer redirected to {to_path}",
            details={"from": from_path, "to": to_path},
        )

    @staticmethod
    def person_ensured(person_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_ENSURED,
            entity_type="person",
            entity_id=person_id,
            description=f"Profile ensured for {email}",
            details={"email": email},
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        direction: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{direction.capitalize()} added: {amount}",
            details={"direction": direction, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_failed(
        direction: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Failed to add {direction}",
            details={"direction": direction},
            error_message=error_message,
        )

    @staticmethod
    def bill_uploaded(
        bill_id: str,
        path: str,
        size_bytes: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_UPLOADED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill uploaded: {path}",
            details={"path": path, "size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def bill_upload_failed(
        filename: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_UPLOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="bill",
            correlation_id=correlation_id,
            description=f"Bill upload failed: {filename}",
            details={"filename": filename},
            error_message=error_message,
        )

    @staticmethod
    def export_generated(
        report_id: str,
        fmt: str,
        row_count: int,
        user_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="user",
            entity_id=user_id,
            description=f"{report_id} report exported as {fmt}",
            details={"report_id": report_id, "format": fmt, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service} ({operation})",
            error_message=error_message,
            details={"service": service, "operation": operation},
            correlation_id=correlation_id,
        )
