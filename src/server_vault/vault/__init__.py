# Vault Module - Machine-bound server credential store
#
# SQLite record set with AES-256-GCM encrypted secrets.
# Key derived from the machine fingerprint (SHA-256), never stored.

from .api import ServerVaultAPI
from .encryption import AuthenticatedCipher, KeyMaterial, derive_key, get_machine_key
from .errors import (
    ConstraintKind,
    ConstraintViolationError,
    DecryptionError,
    InvalidInputError,
    StorageError,
    VaultError,
)
from .fingerprint import FingerprintSource, MachineFingerprint, collect
from .models import CredentialRecord, ServerRecord
from .repository import CredentialRepository
from .vault_manager import VaultManager

__all__ = [
    "ServerVaultAPI",
    "VaultManager",
    "CredentialRepository",
    "AuthenticatedCipher",
    "KeyMaterial",
    "derive_key",
    "get_machine_key",
    "collect",
    "MachineFingerprint",
    "FingerprintSource",
    "CredentialRecord",
    "ServerRecord",
    "VaultError",
    "InvalidInputError",
    "DecryptionError",
    "ConstraintViolationError",
    "StorageError",
    "ConstraintKind",
]
