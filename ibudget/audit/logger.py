"""
Audit Logger

DESIGN DECISION: Every significant action in the session is logged.
This provides:
1. Complete traceability of authentication outcomes and exports
2. Debugging capability
3. A record of how the security posture escalated

The audit logger:
- Is synchronous: all audited operations are short, CPU-only calls
- Gracefully handles storage failures (a broken audit backend never
  fails the operation being audited)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ibudget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ibudget.services.storage import AuditStorageInterface


LOGGER_NAME = "ibudget.audit"

# Configure structlog for local logging
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


def set_log_level(level: str) -> None:
    """Set the minimum level for iBudget's structured logs."""
    logging.getLogger("ibudget").setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for the audit trail.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(LOGGER_NAME)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_session_started(self, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.session_started(correlation_id))

    def log_session_locked(self, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.session_locked(correlation_id))

    def log_expense_added(
        self,
        expense_id: UUID,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new ledger entry. The title stays out of the audit trail."""
        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expense_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_rejected(
            reason=reason,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_authentication_succeeded(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.authentication_succeeded(correlation_id))

    def log_authentication_failed(
        self,
        failure_id: UUID,
        reason: str,
        failure_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.authentication_failed(
            failure_id=failure_id,
            reason=reason,
            failure_count=failure_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_security_status_changed(
        self,
        previous: str,
        current: str,
        failure_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an escalation of the advisory security posture."""
        event = AuditEventBuilder.security_status_changed(
            previous=previous,
            current=current,
            failure_count=failure_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_export_completed(
        self,
        byte_length: int,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.export_completed(
            byte_length=byte_length,
            record_count=record_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_export_failed(
        self,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.export_failed(
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Each session gets one at start-up and passes it through
    every event it emits.
    """
    return uuid4()
