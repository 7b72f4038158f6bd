# server-vault - Main Package
#
# Local vault for remote server credentials (label, host, account, secret).
# Secrets are encrypted at rest with a key bound to this machine.

__version__ = "0.3.0"
__author__ = "Server Vault Team"
__description__ = "Machine-bound encrypted store for remote server credentials"

from .core import (
    EventType,
    EventSeverity,
    get_audit_logger,
)
from .vault import ServerVaultAPI, VaultManager, CredentialRepository

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "ServerVaultAPI",
    "VaultManager",
    "CredentialRepository",
]
