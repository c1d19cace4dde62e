"""Encrypted export package."""

from ibudget.services.export.coordinator import (
    EncryptionError,
    ExportCoordinator,
    ExportError,
    SerializationError,
    decode_records,
    encode_records,
)

__all__ = [
    "EncryptionError",
    "ExportCoordinator",
    "ExportError",
    "SerializationError",
    "decode_records",
    "encode_records",
]
