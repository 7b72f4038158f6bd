# Core Module - Shared Utilities
#
# Core module provides shared functionality across server-vault modules:
# - Audit logging
# - SQLite connection and transaction helpers

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    configure_audit_logger,
    get_audit_logger,
)
from .db import connect, transaction

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "configure_audit_logger",
    "get_audit_logger",
    # SQLite
    "connect",
    "transaction",
]
