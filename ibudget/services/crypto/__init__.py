"""Authenticated encryption package."""

from ibudget.services.crypto.codec import (
    AEADCodec,
    AuthenticationError,
    CryptoError,
    MalformedInputError,
    SealError,
    generate_key,
)

__all__ = [
    "AEADCodec",
    "AuthenticationError",
    "CryptoError",
    "MalformedInputError",
    "SealError",
    "generate_key",
]
