"""
Abstract Storage Interface

DESIGN DECISION: Audit persistence sits behind an abstract interface.
The session only ever keeps state in memory, but the audit trail can
be pointed at a different backend later without touching the
components that produce events.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from ibudget.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the backend rejects the write
        """

    @abstractmethod
    def get_event(self, event_id: UUID) -> AuditEvent:
        """
        Retrieve a single event.

        Raises:
            NotFoundError: If no event has this ID
        """

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
