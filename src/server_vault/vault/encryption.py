# Vault - Encryption Service
#
# Machine fingerprint → vault key (SHA-256)
# Secret encryption (AES-256-GCM, fresh 96-bit nonce per call)
# Storage encoding: base64(nonce || tag || ciphertext)
#
# Security Note:
#     The key lives in process memory only. Never log or persist it,
#     and never log plaintext or payload values.

import base64
import binascii
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionError, InvalidInputError
from .fingerprint import MachineFingerprint, collect
from ..core import EventType, get_audit_logger

logger = logging.getLogger(__name__)


class KeyMaterial:
    """256-bit symmetric key derived from the machine fingerprint.

    Immutable; compares by value; never shows its bytes in ``repr``.
    """

    KEY_LENGTH = 32  # 256 bits for AES-256

    __slots__ = ("_key",)

    def __init__(self, key: bytes):
        if len(key) != self.KEY_LENGTH:
            raise ValueError(
                f"Vault key must be exactly {self.KEY_LENGTH} bytes, got {len(key)}"
            )
        self._key = bytes(key)

    @property
    def key(self) -> bytes:
        return self._key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyMaterial):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return "KeyMaterial(<redacted>)"


def derive_key(fingerprint: MachineFingerprint) -> KeyMaterial:
    """
    Derive the vault key from a machine fingerprint.

    One-way, fixed-length: SHA-256 over the encoded fingerprint, with no
    salt or iterations. The same machine always yields the same key.

    Args:
        fingerprint: Collected machine fingerprint

    Returns:
        256-bit KeyMaterial
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(fingerprint.encode())
    return KeyMaterial(digest.finalize())


# Computed once per process
_machine_key: Optional[KeyMaterial] = None


def get_machine_key() -> KeyMaterial:
    """Get this machine's vault key, deriving it on first use."""
    global _machine_key
    if _machine_key is None:
        fingerprint = collect()
        _machine_key = derive_key(fingerprint)
        get_audit_logger().log_vault_event(
            EventType.KEY_DERIVED,
            "Machine key derived",
            details={"fingerprint_source": fingerprint.source.value},
        )
    return _machine_key


class AuthenticatedCipher:
    """
    Seals and opens individual secrets with AES-256-GCM.

    Flow:
    1. Fresh random 96-bit nonce per seal
    2. AES-256-GCM encrypts and tags (128-bit) with no associated data
    3. nonce || tag || ciphertext is base64-encoded as one text value

    Opening never says *why* a payload was rejected: a wrong key and a
    tampered payload raise the same DecryptionError.
    """

    NONCE_LENGTH = 12  # 96-bit nonce for GCM
    TAG_LENGTH = 16  # 128-bit GCM tag
    MIN_PAYLOAD_LENGTH = NONCE_LENGTH + TAG_LENGTH

    @staticmethod
    def seal(key: KeyMaterial, plaintext: str) -> str:
        """
        Encrypt a secret for storage.

        Args:
            key: Vault key
            plaintext: Secret to encrypt (must not be empty)

        Returns:
            Encoded payload: base64(nonce || tag || ciphertext)

        Raises:
            InvalidInputError: If plaintext is empty
        """
        if not plaintext:
            raise InvalidInputError("Cannot encrypt empty string")

        nonce = os.urandom(AuthenticatedCipher.NONCE_LENGTH)
        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(key.key).encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext = sealed[:-AuthenticatedCipher.TAG_LENGTH]
        tag = sealed[-AuthenticatedCipher.TAG_LENGTH:]

        return AuthenticatedCipher.encode_for_storage(nonce + tag + ciphertext)

    @staticmethod
    def open(key: KeyMaterial, payload: str) -> str:
        """
        Decrypt a stored payload.

        Args:
            key: Vault key (must be the one used to seal)
            payload: Encoded payload produced by ``seal``

        Returns:
            Decrypted plaintext

        Raises:
            InvalidInputError: If payload is empty or too short for nonce+tag
            DecryptionError: If authentication fails for any reason
        """
        if not payload:
            raise InvalidInputError("Cannot decrypt empty payload")

        try:
            data = AuthenticatedCipher.decode_from_storage(payload)
        except (binascii.Error, ValueError):
            # Undecodable text is corrupted data, not a caller mistake
            raise DecryptionError() from None
        # Non-canonical padding bits would otherwise decode to the same bytes
        if AuthenticatedCipher.encode_for_storage(data) != payload:
            raise DecryptionError()

        if len(data) < AuthenticatedCipher.MIN_PAYLOAD_LENGTH:
            raise InvalidInputError(
                f"Payload too short: {len(data)} bytes "
                f"(minimum {AuthenticatedCipher.MIN_PAYLOAD_LENGTH})"
            )

        nonce = data[:AuthenticatedCipher.NONCE_LENGTH]
        tag = data[AuthenticatedCipher.NONCE_LENGTH:AuthenticatedCipher.MIN_PAYLOAD_LENGTH]
        ciphertext = data[AuthenticatedCipher.MIN_PAYLOAD_LENGTH:]

        try:
            plaintext = AESGCM(key.key).decrypt(nonce, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError):
            raise DecryptionError() from None

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data as base64 text for the TEXT column."""
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64 text from the database (strict alphabet)."""
        return base64.b64decode(data.encode("ascii"), validate=True)
