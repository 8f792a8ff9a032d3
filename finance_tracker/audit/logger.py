"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of who signed in and what they wrote
2. Debugging capability for remote backend failures
3. A visible record of silent policy decisions (privilege fallback)

The audit logger:
- Gracefully handles failures (never crashes a page if logging fails)
- Supports correlation IDs to trace related events
- Can forward events to an extra sink (tests use a list)
"""

import logging
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


# One JSON line per event, ISO timestamps
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Route structlog output through the stdlib root handler."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


def get_logger(name: Optional[str] = None):
    """Module-level structured logger."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Writes AuditEvents to the structured log and, optionally, to a sink.

    The sink is any callable taking an AuditEvent; a failing sink is
    reported in the log and never propagates.
    """

    def __init__(
        self,
        sink: Optional[Callable[[AuditEvent], Any]] = None,
    ):
        self._sink = sink
        self._logger = structlog.get_logger("finance_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the sink accepted it (or no sink configured).
        """
        write = getattr(self._logger, _LEVELS[event.severity])
        write("audit_event", **event.to_log_dict())

        if self._sink is not None:
            try:
                self._sink(event)
            except Exception as e:
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_session_restored(self, user_id: str, mode: str) -> None:
        self.log(AuditEventBuilder.session_restored(user_id=user_id, mode=mode))

    def log_signed_in(self, user_id: str, email: str, mode: str) -> None:
        self.log(AuditEventBuilder.signed_in(user_id=user_id, email=email, mode=mode))

    def log_sign_in_rejected(self, email: str, mode: str, reason: str) -> None:
        self.log(AuditEventBuilder.sign_in_rejected(email=email, mode=mode, reason=reason))

    def log_signed_up(self, user_id: str, email: str, mode: str) -> None:
        self.log(AuditEventBuilder.signed_up(user_id=user_id, email=email, mode=mode))

    def log_signed_out(self, user_id: Optional[str], mode: str) -> None:
        self.log(AuditEventBuilder.signed_out(user_id=user_id, mode=mode))

    def log_privileges_resolved(self, user_id: str, granted: list[str]) -> None:
        self.log(AuditEventBuilder.privileges_resolved(user_id=user_id, granted=granted))

    def log_privilege_fallback(self, user_id: str, policy: str, reason: str) -> None:
        """Record an absorbed privilege lookup failure."""
        self.log(AuditEventBuilder.privilege_fallback(
            user_id=user_id,
            policy=policy,
            reason=reason,
        ))

    def log_route_redirected(self, from_path: Optional[str], to_path: str) -> None:
        self.log(AuditEventBuilder.route_redirected(from_path=from_path, to_path=to_path))

    def log_person_ensured(self, person_id: str, email: str) -> None:
        self.log(AuditEventBuilder.person_ensured(person_id=person_id, email=email))

    def log_transaction_added(
        self,
        transaction_id: str,
        direction: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            direction=direction,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_transaction_failed(
        self,
        direction: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_failed(
            direction=direction,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_bill_uploaded(
        self,
        bill_id: str,
        path: str,
        size_bytes: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.bill_uploaded(
            bill_id=bill_id,
            path=path,
            size_bytes=size_bytes,
            correlation_id=correlation_id,
        ))

    def log_bill_upload_failed(
        self,
        filename: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.bill_upload_failed(
            filename=filename,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_export_generated(
        self,
        report_id: str,
        fmt: str,
        row_count: int,
        user_id: str,
    ) -> None:
        self.log(AuditEventBuilder.export_generated(
            report_id=report_id,
            fmt=fmt,
            row_count=row_count,
            user_id=user_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """One per user action (a form submit, an upload batch)."""
    return uuid4()
