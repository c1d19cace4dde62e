"""Tests for the failed-authentication tracker."""

import threading

import pytest

from ibudget.audit import AuditLogger
from ibudget.config import SecuritySettings
from ibudget.models.audit import AuditEventType
from ibudget.models.expense import SecurityStatus
from ibudget.security import SecurityTracker, status_for_count
from ibudget.services.storage import InMemoryAuditStorage


@pytest.fixture
def tracker() -> SecurityTracker:
    return SecurityTracker(settings=SecuritySettings())


class TestStatusTiers:
    """Tests for the count -> status mapping."""

    @pytest.mark.parametrize("count, expected", [
        (0, SecurityStatus.NORMAL),
        (1, SecurityStatus.NORMAL),
        (2, SecurityStatus.NORMAL),
        (3, SecurityStatus.WATCH),
        (4, SecurityStatus.WATCH),
        (5, SecurityStatus.LOCKED),
        (6, SecurityStatus.LOCKED),
        (100, SecurityStatus.LOCKED),
    ])
    def test_default_thresholds(self, count, expected):
        """Test 0-2 Normal, 3-4 Watch, 5+ Locked."""
        assert status_for_count(count, SecuritySettings()) == expected

    def test_custom_thresholds(self):
        """Test that tiers follow configured thresholds."""
        settings = SecuritySettings(watch_threshold=1, lock_threshold=2)
        assert status_for_count(0, settings) == SecurityStatus.NORMAL
        assert status_for_count(1, settings) == SecurityStatus.WATCH
        assert status_for_count(2, settings) == SecurityStatus.LOCKED


class TestRecordFailure:
    """Tests for SecurityTracker.record_failure and status."""

    def test_fresh_tracker_is_normal(self, tracker):
        """Test the initial state."""
        assert tracker.failure_count == 0
        assert tracker.status() == SecurityStatus.NORMAL

    def test_record_failure_returns_event(self, tracker):
        """Test that the created event is returned."""
        event = tracker.record_failure("Face not recognized")
        assert event.reason == "Face not recognized"
        assert tracker.events == (event,)
        assert tracker.failure_count == 1

    def test_empty_reason_accepted(self, tracker):
        """Test that any reason string is accepted."""
        event = tracker.record_failure("")
        assert event.reason == ""
        assert tracker.failure_count == 1

    def test_status_escalates_and_never_decreases(self, tracker):
        """Test monotonic escalation across twelve failures."""
        expected = [SecurityStatus.NORMAL] * 3 + [SecurityStatus.WATCH] * 2 + [SecurityStatus.LOCKED] * 8
        observed = [tracker.status()]
        for i in range(12):
            tracker.record_failure(f"failure {i}")
            observed.append(tracker.status())

        assert observed == expected
        ranks = [status.rank for status in observed]
        assert ranks == sorted(ranks)

    def test_locked_is_advisory(self, tracker):
        """Test that recording continues after Locked."""
        for _ in range(5):
            tracker.record_failure("x")
        assert tracker.status() == SecurityStatus.LOCKED
        tracker.record_failure("still accepted")
        assert tracker.failure_count == 6

    def test_independent_trackers(self):
        """Test that a new tracker starts from zero."""
        first = SecurityTracker(settings=SecuritySettings())
        for _ in range(5):
            first.record_failure("x")
        second = SecurityTracker(settings=SecuritySettings())
        assert second.status() == SecurityStatus.NORMAL


class TestRecentFailures:
    """Tests for SecurityTracker.recent_failures."""

    def test_empty(self, tracker):
        """Test that no history yields an empty list."""
        assert tracker.recent_failures(5) == []

    def test_shorter_history(self, tracker):
        """Test fewer than n events."""
        a = tracker.record_failure("a")
        b = tracker.record_failure("b")
        assert tracker.recent_failures(5) == [a, b]

    def test_window_is_chronological(self, tracker):
        """Test that the last n come oldest first."""
        events = [tracker.record_failure(str(i)) for i in range(6)]
        assert tracker.recent_failures(3) == events[3:]
        assert [e.reason for e in tracker.recent_failures(3)] == ["3", "4", "5"]

    @pytest.mark.parametrize("n", [0, -1])
    def test_non_positive_window(self, tracker, n):
        """Test that n <= 0 yields nothing."""
        tracker.record_failure("a")
        assert tracker.recent_failures(n) == []


class TestConcurrency:
    """Tests for failures reported from several threads."""

    def test_concurrent_failures_are_all_recorded(self):
        """Test that no failure is lost when threads race."""
        tracker = SecurityTracker(settings=SecuritySettings())
        threads_count = 8
        per_thread = 25
        barrier = threading.Barrier(threads_count)

        def report(thread_index: int) -> None:
            barrier.wait()
            for i in range(per_thread):
                tracker.record_failure(f"{thread_index}-{i}")

        threads = [threading.Thread(target=report, args=(t,)) for t in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.failure_count == threads_count * per_thread
        assert tracker.status() == SecurityStatus.LOCKED
        assert len({e.id for e in tracker.events}) == threads_count * per_thread

        # Each thread's own failures stay in the order it reported them
        for t in range(threads_count):
            mine = [e.reason for e in tracker.events if e.reason.startswith(f"{t}-")]
            assert mine == [f"{t}-{i}" for i in range(per_thread)]


class TestTrackerAudit:
    """Tests for audit events emitted by the tracker."""

    def test_failures_and_escalations_are_audited(self):
        """Test one failure event per attempt and one event per escalation."""
        storage = InMemoryAuditStorage()
        tracker = SecurityTracker(
            settings=SecuritySettings(),
            audit_logger=AuditLogger(storage),
        )
        for _ in range(6):
            tracker.record_failure("Face not recognized")

        events = list(reversed(storage.get_recent_events(limit=100)))
        failures = [e for e in events if e.event_type == AuditEventType.AUTHENTICATION_FAILED]
        changes = [e for e in events if e.event_type == AuditEventType.SECURITY_STATUS_CHANGED]

        assert len(failures) == 6
        assert [(c.details["previous"], c.details["current"]) for c in changes] == [
            ("Normal", "Watch"),
            ("Watch", "Locked"),
        ]
        assert [c.details["failure_count"] for c in changes] == [3, 5]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
