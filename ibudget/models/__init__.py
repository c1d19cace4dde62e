"""
Data Models Package

This package contains all Pydantic models used in iBudget.
All data flowing through the core must conform to these schemas.
"""

from ibudget.models.expense import (
    AuthenticationOutcome,
    EncryptionKey,
    ExpenseRecord,
    ExportArtifact,
    LoginFailureEvent,
    SecurityOverview,
    SecurityStatus,
    utc_now,
)
from ibudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense and security models
    "AuthenticationOutcome",
    "EncryptionKey",
    "ExpenseRecord",
    "ExportArtifact",
    "LoginFailureEvent",
    "SecurityOverview",
    "SecurityStatus",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
