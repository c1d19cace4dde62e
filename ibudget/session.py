"""
Budget Session

This module ties together all the components for one interactive
session and defines the flows the presentation layer drives:
1. Expense entry (form input -> validate -> ledger)
2. Authentication outcome (biometric result -> failure tracking -> message)
3. Secure export (ledger -> canonical bytes -> AES-GCM -> artifact size)

DESIGN DECISION: All session state lives in one explicit object.
The ledger, the failure tracker, the encryption key and the latest export
belong to a BudgetSession, never to module globals, so independent
sessions (and tests) never see each other's data.

Every component shares the session's single re-entrant lock, so
callbacks arriving off the main thread (a biometric check completing
late, for example) are serialized with UI-driven calls.
"""

import threading
from datetime import datetime
from typing import Optional
from uuid import UUID

from ibudget.audit import AuditLogger, create_correlation_id, set_log_level
from ibudget.config import Settings, get_settings
from ibudget.ledger import Ledger, ValidationError
from ibudget.models.expense import (
    AuthenticationOutcome,
    EncryptionKey,
    ExpenseRecord,
    ExportArtifact,
    LoginFailureEvent,
    SecurityOverview,
    SecurityStatus,
)
from ibudget.security import SecurityTracker
from ibudget.services.crypto import AEADCodec, generate_key
from ibudget.services.export import ExportCoordinator
from ibudget.services.storage import AuditStorageInterface, InMemoryAuditStorage


AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."
AUTH_LOCKED_MESSAGE = "Multiple failed attempts – account temporarily locked."
BIOMETRICS_UNAVAILABLE_MESSAGE = "Biometric authentication not available on this device."
BIOMETRICS_UNAVAILABLE_REASON = "Biometrics unavailable"
UNKNOWN_FAILURE_REASON = "Unknown error"


class BudgetSession:
    """
    One user session: ledger, security tracker, key and latest export.

    The encryption key is generated once here and never leaves the
    session; it is not persisted, exported or rotated.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        key: Optional[EncryptionKey] = None,
        codec: Optional[AEADCodec] = None,
    ):
        settings = settings or get_settings()
        self._security_settings = settings.security
        export_settings = settings.export

        self._lock = threading.RLock()
        self._correlation_id = create_correlation_id()
        self._audit_logger = audit_logger or AuditLogger()
        self._key = key or generate_key(export_settings.key_bits)
        self._is_unlocked = False

        self._ledger = Ledger(settings=settings.ledger, lock=self._lock)
        self._tracker = SecurityTracker(
            settings=self._security_settings,
            lock=self._lock,
            audit_logger=self._audit_logger,
            correlation_id=self._correlation_id,
        )
        self._exporter = ExportCoordinator(
            codec=codec,
            settings=export_settings,
            lock=self._lock,
            audit_logger=self._audit_logger,
            correlation_id=self._correlation_id,
        )

        self._audit_logger.log_session_started(self._correlation_id)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> UUID:
        return self._correlation_id

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def tracker(self) -> SecurityTracker:
        return self._tracker

    @property
    def exporter(self) -> ExportCoordinator:
        return self._exporter

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def is_unlocked(self) -> bool:
        with self._lock:
            return self._is_unlocked

    # ------------------------------------------------------------------
    # Expense entry
    # ------------------------------------------------------------------

    def add_expense(
        self,
        title: Optional[str],
        category: Optional[str],
        amount_text: str,
        date: datetime,
    ) -> tuple[Optional[ExpenseRecord], str]:
        """
        Add an expense from form input.

        Returns:
            (record, message). On validation failure the record is None
            and the message is meant for the form; the ledger is unchanged.
        """
        try:
            record = self._ledger.add(title, category, amount_text, date)
        except ValidationError as e:
            self._audit_logger.log_expense_rejected(
                reason=str(e),
                correlation_id=self._correlation_id,
            )
            return None, str(e)

        self._audit_logger.log_expense_added(
            expense_id=record.id,
            category=record.category,
            amount=str(record.amount),
            correlation_id=self._correlation_id,
        )
        return record, ""

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def report_authentication(self, outcome: AuthenticationOutcome) -> Optional[str]:
        """
        Apply a biometric outcome produced outside the core.

        Safe to call from a callback thread.

        Returns:
            None on success, otherwise the message to show the user.
        """
        with self._lock:
            if outcome.succeeded:
                self._is_unlocked = True
                self._audit_logger.log_authentication_succeeded(self._correlation_id)
                return None

            if not outcome.biometrics_available:
                self._tracker.record_failure(BIOMETRICS_UNAVAILABLE_REASON)
                return BIOMETRICS_UNAVAILABLE_MESSAGE

            self._tracker.record_failure(outcome.reason or UNKNOWN_FAILURE_REASON)
            if self._tracker.status() == SecurityStatus.LOCKED:
                return AUTH_LOCKED_MESSAGE
            return AUTH_FAILED_MESSAGE

    def record_failure(self, reason: str) -> LoginFailureEvent:
        return self._tracker.record_failure(reason)

    def status(self) -> SecurityStatus:
        return self._tracker.status()

    def recent_failures(self, n: int) -> list[LoginFailureEvent]:
        return self._tracker.recent_failures(n)

    def log_out(self) -> None:
        """Lock the session again. The failure history is kept."""
        with self._lock:
            self._is_unlocked = False
        self._audit_logger.log_session_locked(self._correlation_id)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_snapshot(self) -> ExportArtifact:
        """
        Seal the current ledger with the session key.

        Raises:
            ExportError: If encoding or sealing fails
        """
        return self._exporter.export_snapshot(self._ledger, self._key)

    def open_snapshot(self, artifact: ExportArtifact) -> list[ExpenseRecord]:
        """Decrypt an artifact produced by this session."""
        return self._exporter.open_snapshot(artifact, self._key)

    def security_overview(self) -> SecurityOverview:
        """Consistent snapshot for the Security Center view."""
        with self._lock:
            return SecurityOverview(
                is_unlocked=self._is_unlocked,
                status=self._tracker.status(),
                failure_count=self._tracker.failure_count,
                recent_failures=tuple(
                    self._tracker.recent_failures(self._security_settings.recent_failures_window)
                ),
                last_export_size=self._exporter.last_export_size,
            )


def create_session(
    settings: Optional[Settings] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> BudgetSession:
    """
    Factory function to create a fully wired session.

    Args:
        settings: Configuration; defaults to the cached environment settings.
        audit_storage: Audit backend; defaults to a fresh in-memory log.
    """
    settings = settings or get_settings()
    set_log_level(settings.app.log_level)

    if audit_storage is None:
        audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)
    return BudgetSession(settings=settings, audit_logger=audit_logger)
