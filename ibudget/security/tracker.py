"""
Security Tracker

Records failed authentication attempts and derives an advisory
security status from how many have accumulated.

    failures 0..watch-1       -> Normal
    failures watch..lock-1    -> Watch
    failures >= lock          -> Locked

(with the default thresholds: 0-2 Normal, 3-4 Watch, 5+ Locked)

DESIGN DECISION: The tracker is a one-way ratchet for the session.
There is no reset or unlock operation, so the failure count and the
derived status never go down. A fresh session starts at zero.

The status is ADVISORY. Locked is a label for the presentation layer;
it does not block authentication or any other operation.
"""

import threading
from contextlib import AbstractContextManager
from typing import Optional
from uuid import UUID

from ibudget.audit import AuditLogger
from ibudget.config import SecuritySettings, get_settings
from ibudget.models.expense import LoginFailureEvent, SecurityStatus


def status_for_count(failure_count: int, settings: SecuritySettings) -> SecurityStatus:
    """Map a failure count onto the status tiers."""
    if failure_count >= settings.lock_threshold:
        return SecurityStatus.LOCKED
    if failure_count >= settings.watch_threshold:
        return SecurityStatus.WATCH
    return SecurityStatus.NORMAL


class SecurityTracker:
    """
    Append-only log of LoginFailureEvents for one session.

    Events are stored in the order recordFailure calls acquire the lock,
    which is the order their outcomes were observed.
    """

    def __init__(
        self,
        settings: Optional[SecuritySettings] = None,
        lock: Optional[AbstractContextManager] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._settings = settings or get_settings().security
        self._lock = lock or threading.RLock()
        self._audit_logger = audit_logger
        self._correlation_id = correlation_id
        self._events: list[LoginFailureEvent] = []

    @property
    def failure_count(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def events(self) -> tuple[LoginFailureEvent, ...]:
        """Every recorded failure, oldest first."""
        with self._lock:
            return tuple(self._events)

    def record_failure(self, reason: str) -> LoginFailureEvent:
        """
        Append a failure stamped with the current time.

        Any reason string is accepted, including an empty one.
        Always succeeds.
        """
        with self._lock:
            previous = status_for_count(len(self._events), self._settings)
            event = LoginFailureEvent(reason=reason)
            self._events.append(event)
            count = len(self._events)
            current = status_for_count(count, self._settings)

            if self._audit_logger:
                self._audit_logger.log_authentication_failed(
                    failure_id=event.id,
                    reason=reason,
                    failure_count=count,
                    correlation_id=self._correlation_id,
                )
                if current != previous:
                    self._audit_logger.log_security_status_changed(
                        previous=previous.value,
                        current=current.value,
                        failure_count=count,
                        correlation_id=self._correlation_id,
                    )

        return event

    def status(self) -> SecurityStatus:
        """Current tier, recomputed from the failure count on every call."""
        return status_for_count(self.failure_count, self._settings)

    def recent_failures(self, n: int) -> list[LoginFailureEvent]:
        """
        The last n failures in chronological order (oldest of the window first).

        Returns fewer than n when the history is shorter, and an empty
        list when n <= 0 or nothing has been recorded.
        """
        if n <= 0:
            return []
        with self._lock:
            return self._events[-n:]
