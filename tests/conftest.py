"""
Shared pytest fixtures for the server-vault test suite.

Autouse fixtures below isolate tests from the live machine:
  - Audit logger -> temp directory   (no entries in the real audit log)
  - Machine key  -> fixed test key   (no hardware probing, no subprocesses)
"""

import pytest

from server_vault.vault.encryption import derive_key
from server_vault.vault.fingerprint import FingerprintSource, MachineFingerprint
from server_vault.vault.models import ServerRecord
from server_vault.vault.repository import CredentialRepository
from server_vault.vault.vault_manager import VaultManager


def make_fingerprint(serial: str = "WD-TEST-0001") -> MachineFingerprint:
    return MachineFingerprint(
        attributes=("Linux", "6.1.0", "x86_64", "Test CPU @ 3.00GHz", "8", serial),
        source=FingerprintSource.COLLECTED,
    )


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test.

    Anything that calls ``get_audit_logger()`` (directly or through a
    VaultManager) writes into ``tmp_path / "audit_logs"`` instead of
    ``~/.server-vault/audit_logs``.
    """
    import server_vault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")

    yield audit_mod._audit_logger

    # configure_audit_logger() may have swapped the instance during the test
    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _fixed_machine_key(monkeypatch):
    """Pre-seed the process-wide machine key so nothing reads host hardware."""
    import server_vault.vault.encryption as enc_mod

    monkeypatch.setattr(enc_mod, "_machine_key", derive_key(make_fingerprint()))


@pytest.fixture
def fingerprint_factory():
    return make_fingerprint


@pytest.fixture
def audit(_isolate_audit_logs):
    return _isolate_audit_logs


@pytest.fixture
def key():
    return derive_key(make_fingerprint())


@pytest.fixture
def other_key():
    return derive_key(make_fingerprint(serial="WD-OTHER-9999"))


@pytest.fixture
def repository(tmp_path):
    return CredentialRepository(tmp_path / "servers.db")


@pytest.fixture
def manager(repository, key, audit):
    return VaultManager(repository, key=key, audit=audit)


@pytest.fixture
def prod_server():
    return ServerRecord(label="prod", host="10.0.0.1", account="root", secret="pw1")


@pytest.fixture
def locked_repository(monkeypatch, repository):
    """Repository whose database is write-locked by another connection.

    The repository's connections give up immediately instead of waiting
    out busy_timeout. Yields the repository; the lock is released on exit.
    """
    import server_vault.vault.repository as repo_mod
    from server_vault.core.db import connect as real_connect

    def impatient_connect(db_path):
        conn = real_connect(db_path)
        conn.execute("PRAGMA busy_timeout=0")
        return conn

    monkeypatch.setattr(repo_mod, "db_connect", impatient_connect)

    blocker = real_connect(repository.db_path)
    blocker.execute("BEGIN IMMEDIATE")
    try:
        yield repository
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()
