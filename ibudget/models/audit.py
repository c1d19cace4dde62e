"""
Audit Models for iBudget

Every significant action in the session is logged for audit purposes:
expenses added or rejected, authentication outcomes, posture escalations
and exports.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
They also never carry secrets: no key bytes, no ciphertext, no snapshot
plaintext. Exports are described by size and record count only.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ibudget.models.expense import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_LOCKED = "session_locked"

    # Ledger
    EXPENSE_ADDED = "expense_added"
    EXPENSE_REJECTED = "expense_rejected"

    # Authentication
    AUTHENTICATION_SUCCEEDED = "authentication_succeeded"
    AUTHENTICATION_FAILED = "authentication_failed"
    SECURITY_STATUS_CHANGED = "security_status_changed"

    # Export
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'session', 'export')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., everything in one session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, category, amount, correlation_id)
        event = AuditEventBuilder.authentication_failed(event_id, reason, count, correlation_id)
    """

    @staticmethod
    def session_started(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            entity_type="session",
            entity_id=correlation_id,
            correlation_id=correlation_id,
            description="Session started",
        )

    @staticmethod
    def session_locked(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_LOCKED,
            entity_type="session",
            entity_id=correlation_id,
            correlation_id=correlation_id,
            description="User logged out",
            is_user_action=True,
        )

    @staticmethod
    def expense_added(
        expense_id: UUID,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description="Expense rejected by validation",
            error_code="invalid_amount",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def authentication_succeeded(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHENTICATION_SUCCEEDED,
            entity_type="session",
            correlation_id=correlation_id,
            description="Biometric authentication succeeded",
            is_user_action=True,
        )

    @staticmethod
    def authentication_failed(
        failure_id: UUID,
        reason: str,
        failure_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHENTICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="login_failure",
            entity_id=failure_id,
            correlation_id=correlation_id,
            description=f"Authentication failed ({failure_count} so far)",
            details={
                "reason": reason,
                "failure_count": failure_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def security_status_changed(
        previous: str,
        current: str,
        failure_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SECURITY_STATUS_CHANGED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Security status escalated: {previous} -> {current}",
            details={
                "previous": previous,
                "current": current,
                "failure_count": failure_count,
            },
        )

    @staticmethod
    def export_completed(
        byte_length: int,
        record_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"Secure export created ({byte_length} bytes)",
            details={
                "byte_length": byte_length,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def export_failed(
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"Secure export failed: {error_type}",
            error_code=error_type,
            error_message=error_message,
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
