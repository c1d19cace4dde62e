"""
Export Coordinator

Turns the ledger into a sealed artifact:

    Ledger.records -> canonical JSON -> AEADCodec.seal -> ExportArtifact

Canonical encoding: a JSON array of records, fields in declaration order
(id, title, category, amount, date), amounts as exact decimal strings,
dates as ISO-8601 UTC timestamps, no insignificant whitespace.

DESIGN DECISION: Only the latest artifact is kept.
Each successful export replaces the previous one. A failed export leaves
the previous artifact in place and never stores a partial result.
The export is simulated: nothing leaves the process.
"""

import threading
from contextlib import AbstractContextManager
from typing import Optional, Union
from uuid import UUID

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from ibudget.audit import AuditLogger
from ibudget.config import ExportSettings, get_settings
from ibudget.ledger import Ledger
from ibudget.models.expense import EncryptionKey, ExpenseRecord, ExportArtifact
from ibudget.services.crypto import AEADCodec, CryptoError


_RECORDS_ADAPTER = TypeAdapter(list[ExpenseRecord])


class ExportError(Exception):
    """Base exception for export failures."""
    pass


class SerializationError(ExportError):
    """The ledger could not be encoded, or a snapshot could not be decoded."""
    pass


class EncryptionError(ExportError):
    """Sealing the encoded snapshot failed. The cause is chained."""
    pass


def encode_records(records: list[ExpenseRecord]) -> bytes:
    """Canonical byte encoding of a list of records."""
    try:
        return _RECORDS_ADAPTER.dump_json(records)
    except PydanticSerializationError as e:
        raise SerializationError(f"Could not encode ledger: {e}") from e


def decode_records(payload: bytes) -> list[ExpenseRecord]:
    """Inverse of encode_records."""
    try:
        return _RECORDS_ADAPTER.validate_json(payload)
    except PydanticValidationError as e:
        raise SerializationError(
            f"Snapshot does not decode to expense records ({e.error_count()} errors)"
        ) from e


class ExportCoordinator:
    """
    Orchestrates ledger export and holds the most recent artifact.

    The key is supplied by the owning session on every call and is
    only ever read here.
    """

    def __init__(
        self,
        codec: Optional[AEADCodec] = None,
        settings: Optional[ExportSettings] = None,
        lock: Optional[AbstractContextManager] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._codec = codec or AEADCodec()
        self._settings = settings or get_settings().export
        self._lock = lock or threading.RLock()
        self._audit_logger = audit_logger
        self._correlation_id = correlation_id
        self._last_artifact: Optional[ExportArtifact] = None

    @property
    def last_artifact(self) -> Optional[ExportArtifact]:
        with self._lock:
            return self._last_artifact

    @property
    def last_export_size(self) -> Optional[int]:
        artifact = self.last_artifact
        return artifact.byte_length if artifact else None

    def export_snapshot(self, ledger: Ledger, key: EncryptionKey) -> ExportArtifact:
        """
        Encode and seal the ledger, replacing the stored artifact.

        Raises:
            SerializationError: If a record cannot be encoded
            EncryptionError: If sealing fails (wraps the CryptoError)
        """
        with self._lock:
            records = list(ledger.records)
            try:
                payload = encode_records(records)
                try:
                    sealed = self._codec.seal(
                        payload,
                        key,
                        associated_data=self._settings.associated_data_bytes,
                    )
                except CryptoError as e:
                    raise EncryptionError(str(e)) from e
            except ExportError as e:
                if self._audit_logger:
                    self._audit_logger.log_export_failed(
                        error_type=type(e).__name__,
                        error_message=str(e),
                        correlation_id=self._correlation_id,
                    )
                raise

            artifact = ExportArtifact(sealed=sealed, record_count=len(records))
            self._last_artifact = artifact

        if self._audit_logger:
            self._audit_logger.log_export_completed(
                byte_length=artifact.byte_length,
                record_count=artifact.record_count,
                correlation_id=self._correlation_id,
            )

        return artifact

    def open_snapshot(
        self,
        artifact: Union[ExportArtifact, bytes],
        key: EncryptionKey,
    ) -> list[ExpenseRecord]:
        """
        Verify, decrypt and decode an artifact back into records.

        Raises:
            CryptoError: If the artifact is malformed or fails authentication
            SerializationError: If the plaintext is not a record list
        """
        sealed = artifact.sealed if isinstance(artifact, ExportArtifact) else artifact
        payload = self._codec.open(
            sealed,
            key,
            associated_data=self._settings.associated_data_bytes,
        )
        return decode_records(payload)
