"""Integration tests for the session flows."""

import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ibudget.config import get_settings
from ibudget.models.audit import AuditEventType
from ibudget.models.expense import AuthenticationOutcome, SecurityStatus
from ibudget.services.crypto import AuthenticationError
from ibudget.services.storage import InMemoryAuditStorage
from ibudget.session import (
    AUTH_FAILED_MESSAGE,
    AUTH_LOCKED_MESSAGE,
    BIOMETRICS_UNAVAILABLE_MESSAGE,
    BIOMETRICS_UNAVAILABLE_REASON,
    UNKNOWN_FAILURE_REASON,
    BudgetSession,
    create_session,
)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def session(audit_storage) -> BudgetSession:
    return create_session(audit_storage=audit_storage)


def _event_types(storage: InMemoryAuditStorage) -> list[AuditEventType]:
    return [e.event_type for e in reversed(storage.get_recent_events(limit=1000))]


class TestSessionLifecycle:
    """Tests for session construction and independence."""

    def test_session_starts_locked_and_normal(self, session, audit_storage):
        """Test initial state and the session_started event."""
        assert session.is_unlocked is False
        assert session.status() == SecurityStatus.NORMAL
        assert len(session.ledger) == 0
        assert _event_types(audit_storage) == [AuditEventType.SESSION_STARTED]

    def test_sessions_are_independent(self):
        """Test that two sessions share no state."""
        first = create_session()
        second = create_session()
        first.add_expense("a", "Food", "1", datetime(2024, 1, 1))
        first.record_failure("x")

        assert len(second.ledger) == 0
        assert second.tracker.failure_count == 0
        assert first.session_id != second.session_id

    def test_sessions_use_different_keys(self):
        """Test that one session cannot open another's export."""
        first = create_session()
        second = create_session()
        first.add_expense("a", "Food", "1", datetime(2024, 1, 1))
        artifact = first.export_snapshot()
        with pytest.raises(AuthenticationError):
            second.open_snapshot(artifact)

    def test_default_settings_are_cached(self):
        """Test that get_settings returns the same object."""
        assert get_settings() is get_settings()


class TestExpenseFlow:
    """Tests for BudgetSession.add_expense."""

    def test_valid_expense(self, session, audit_storage):
        """Test that a valid expense is stored and audited."""
        record, message = session.add_expense("Lunch", "Food", "12.5", datetime(2024, 1, 1))
        assert record is not None
        assert message == ""
        assert session.ledger.total_spent() == Decimal("12.5")
        assert AuditEventType.EXPENSE_ADDED in _event_types(audit_storage)

    @pytest.mark.parametrize("amount_text", ["0", "-5", "abc", ""])
    def test_invalid_expense_returns_message(self, session, audit_storage, amount_text):
        """Test that validation failures are reported, not raised."""
        record, message = session.add_expense("Lunch", "Food", amount_text, datetime(2024, 1, 1))
        assert record is None
        assert message == "Amount must be a number greater than zero"
        assert len(session.ledger) == 0
        assert AuditEventType.EXPENSE_REJECTED in _event_types(audit_storage)

    def test_expense_title_not_audited(self, session, audit_storage):
        """Test that the free-text title stays out of the audit trail."""
        session.add_expense("Secret gift for Sam", "Gifts", "40", datetime(2024, 1, 1))
        for event in audit_storage.get_recent_events():
            assert "Secret gift" not in str(event.to_log_dict())


class TestAuthenticationFlow:
    """Tests for BudgetSession.report_authentication."""

    def test_success_unlocks(self, session):
        """Test that success unlocks without recording a failure."""
        assert session.report_authentication(AuthenticationOutcome.success()) is None
        assert session.is_unlocked is True
        assert session.tracker.failure_count == 0

    def test_failure_records_reason(self, session):
        """Test that a failure is recorded with its reason."""
        message = session.report_authentication(AuthenticationOutcome.failure("Face not recognized"))
        assert message == AUTH_FAILED_MESSAGE
        assert session.recent_failures(1)[0].reason == "Face not recognized"
        assert session.is_unlocked is False

    def test_failure_without_reason(self, session):
        """Test the fallback reason."""
        session.report_authentication(AuthenticationOutcome.failure())
        assert session.recent_failures(1)[0].reason == UNKNOWN_FAILURE_REASON

    def test_biometrics_unavailable(self, session):
        """Test that unavailable biometrics count as a failure."""
        message = session.report_authentication(AuthenticationOutcome.unavailable())
        assert message == BIOMETRICS_UNAVAILABLE_MESSAGE
        assert session.recent_failures(1)[0].reason == BIOMETRICS_UNAVAILABLE_REASON
        assert session.tracker.failure_count == 1

    def test_locked_message_after_five_failures(self, session):
        """Test the lock message once status reaches Locked."""
        messages = [
            session.report_authentication(AuthenticationOutcome.failure("nope"))
            for _ in range(5)
        ]
        assert messages[:4] == [AUTH_FAILED_MESSAGE] * 4
        assert messages[4] == AUTH_LOCKED_MESSAGE
        assert session.status() == SecurityStatus.LOCKED

    def test_lockout_is_advisory(self, session):
        """Test that Locked does not prevent a later successful unlock."""
        for _ in range(5):
            session.report_authentication(AuthenticationOutcome.failure("nope"))
        assert session.report_authentication(AuthenticationOutcome.success()) is None
        assert session.is_unlocked is True
        assert session.status() == SecurityStatus.LOCKED

    def test_log_out_keeps_history(self, session, audit_storage):
        """Test that logging out relocks but keeps the failure count."""
        session.report_authentication(AuthenticationOutcome.failure("nope"))
        session.report_authentication(AuthenticationOutcome.success())
        session.log_out()
        assert session.is_unlocked is False
        assert session.tracker.failure_count == 1
        assert AuditEventType.SESSION_LOCKED in _event_types(audit_storage)

    def test_callbacks_from_threads(self, session):
        """Test failure reports arriving from several callback threads."""
        def callback() -> None:
            for _ in range(10):
                session.report_authentication(AuthenticationOutcome.failure("late"))

        threads = [threading.Thread(target=callback) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert session.tracker.failure_count == 50
        assert session.status() == SecurityStatus.LOCKED


class TestExportFlow:
    """Tests for the session export flow."""

    def test_end_to_end(self, session):
        """Test three expenses, a total of 35 and a recoverable export."""
        session.add_expense("Groceries", "Food", "10", datetime(2024, 1, 1, tzinfo=timezone.utc))
        session.add_expense("Fill-up", "Gas", "20", datetime(2024, 1, 2, tzinfo=timezone.utc))
        session.add_expense("Snack", "Food", "5", datetime(2024, 1, 3, tzinfo=timezone.utc))
        assert session.ledger.total_spent() == Decimal("35")

        artifact = session.export_snapshot()

        recovered = session.open_snapshot(artifact)
        assert set(recovered) == set(session.ledger.records)
        assert session.exporter.last_export_size == artifact.byte_length

    def test_key_is_stable_across_exports(self, session):
        """Test that every export of a session opens with the same key."""
        session.add_expense("a", "Food", "1", datetime(2024, 1, 1))
        first = session.export_snapshot()
        second = session.export_snapshot()
        assert session.open_snapshot(first) == session.open_snapshot(second)


class TestSecurityOverview:
    """Tests for BudgetSession.security_overview."""

    def test_overview_before_activity(self, session):
        """Test the overview of a fresh session."""
        overview = session.security_overview()
        assert overview.is_unlocked is False
        assert overview.status == SecurityStatus.NORMAL
        assert overview.failure_count == 0
        assert overview.recent_failures == ()
        assert overview.last_export_size is None

    def test_overview_after_activity(self, session):
        """Test counts, the five-item window and export size."""
        for i in range(7):
            session.record_failure(f"attempt {i}")
        session.report_authentication(AuthenticationOutcome.success())
        session.add_expense("a", "Food", "1", datetime(2024, 1, 1))
        artifact = session.export_snapshot()

        overview = session.security_overview()
        assert overview.is_unlocked is True
        assert overview.status == SecurityStatus.LOCKED
        assert overview.failure_count == 7
        assert [e.reason for e in overview.recent_failures] == [f"attempt {i}" for i in range(2, 7)]
        assert overview.last_export_size == artifact.byte_length


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
