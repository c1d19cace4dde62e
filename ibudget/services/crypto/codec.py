"""
AEAD Codec

Seals and opens byte strings with AES-GCM.

Sealed layout (same as CryptoKit's "combined" representation):

    nonce (12 bytes) || ciphertext || tag (16 bytes)

DESIGN DECISION: A fresh random nonce is drawn inside every seal call
and travels with the output, so `open` needs nothing but the key.
Callers cannot supply or reuse a nonce.

Failures are raised as CryptoError subclasses. Nothing is ever returned
from `open` unless the tag verifies; AES-GCM in `cryptography` decrypts
and authenticates in one call and releases no plaintext on failure.
"""

import os
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ibudget.models.expense import EncryptionKey


NONCE_SIZE = 12
TAG_SIZE = 16
MIN_SEALED_SIZE = NONCE_SIZE + TAG_SIZE

BytesLike = Union[bytes, bytearray, memoryview]


class CryptoError(Exception):
    """Base exception for seal/open failures."""
    pass


class SealError(CryptoError):
    """The cipher failed while sealing. No output was produced."""
    pass


class AuthenticationError(CryptoError):
    """Tag verification failed: tampered data, wrong key or wrong associated data."""
    pass


class MalformedInputError(CryptoError):
    """Sealed input is too short to contain a nonce and a tag."""
    pass


def generate_key(bit_length: int = 256) -> EncryptionKey:
    """Create a new random AES key."""
    return EncryptionKey(material=AESGCM.generate_key(bit_length=bit_length))


class AEADCodec:
    """
    Stateless AES-GCM sealer.

    Holds no key material; the key is passed on every call.
    """

    def seal(
        self,
        plaintext: BytesLike,
        key: EncryptionKey,
        associated_data: Optional[bytes] = None,
    ) -> bytes:
        """
        Encrypt and authenticate plaintext.

        Returns:
            nonce || ciphertext || tag

        Raises:
            SealError: If the underlying cipher fails
        """
        nonce = os.urandom(NONCE_SIZE)
        try:
            ciphertext = AESGCM(key.reveal()).encrypt(nonce, bytes(plaintext), associated_data)
        except Exception as e:
            raise SealError(f"Encryption failed: {type(e).__name__}") from e

        return nonce + ciphertext

    def open(
        self,
        sealed: BytesLike,
        key: EncryptionKey,
        associated_data: Optional[bytes] = None,
    ) -> bytes:
        """
        Verify and decrypt a sealed blob.

        Raises:
            MalformedInputError: If the blob is shorter than nonce + tag
            AuthenticationError: If the tag does not verify
        """
        data = bytes(sealed)
        if len(data) < MIN_SEALED_SIZE:
            raise MalformedInputError(
                f"Sealed data is {len(data)} bytes; at least {MIN_SEALED_SIZE} required"
            )

        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            return AESGCM(key.reveal()).decrypt(nonce, ciphertext, associated_data)
        except InvalidTag:
            raise AuthenticationError("Authentication tag did not verify") from None
