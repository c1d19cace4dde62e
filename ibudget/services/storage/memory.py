"""
In-memory audit storage.

Lives for exactly one session; nothing is written to disk.
"""

import threading
from uuid import UUID

from ibudget.models.audit import AuditEvent
from ibudget.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list, guarded by its own lock."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._index: dict[UUID, AuditEvent] = {}
        self._lock = threading.Lock()

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            if event.event_id in self._index:
                raise DuplicateError(f"Audit event {event.event_id} already recorded")
            self._events.append(event)
            self._index[event.event_id] = event
        return True

    def get_event(self, event_id: UUID) -> AuditEvent:
        with self._lock:
            try:
                return self._index[event_id]
            except KeyError:
                raise NotFoundError(f"Audit event {event_id} not found") from None

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self._events[-limit:]))
