"""Tests for the SQLite credential repository.

Covers: schema, ordered load, atomic replace (rollback on any constraint
breach), structured constraint classification, idempotent delete.
"""

import sqlite3
from contextlib import closing

import pytest

from server_vault.vault.errors import (
    ConstraintKind,
    ConstraintViolationError,
    InvalidInputError,
    StorageError,
)
from server_vault.vault.models import CredentialRecord
from server_vault.vault import repository as repo_mod
from server_vault.vault.repository import CredentialRepository, classify_integrity_error


def rec(label, host, account="root", secret="c2VhbGVk"):
    return CredentialRecord(label=label, host=host, account=account, secret=secret)


@pytest.fixture
def seeded(repository):
    original = [rec("prod", "10.0.0.1"), rec("stage", "10.0.0.2", account="deploy")]
    repository.replace_all(original)
    return original


# ── Schema ──────────────────────────────────────────────────────────


class TestSchema:

    def test_creates_parent_directory(self, tmp_path):
        repo = CredentialRepository(tmp_path / "nested" / "dir" / "servers.db")
        assert repo.db_path.exists()

    def test_default_path_is_shared_data_dir(self, monkeypatch, tmp_path):
        default = tmp_path / "home" / ".server-vault" / "servers.db"
        monkeypatch.setattr(repo_mod, "DEFAULT_DB_PATH", default)
        assert CredentialRepository().db_path == default
        assert default.exists()

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "garbage.db"
        path.write_bytes(b"this is not an sqlite database" * 100)
        with pytest.raises(StorageError):
            CredentialRepository(path)

    def test_columns(self, repository):
        with closing(sqlite3.connect(str(repository.db_path))) as conn:
            cols = {row[1]: row for row in conn.execute("PRAGMA table_info(servers)")}
        assert set(cols) == {"host", "label", "account", "secret"}
        assert cols["host"][5] == 1  # primary key
        for name in ("host", "label", "account", "secret"):
            assert cols[name][3] == 1  # NOT NULL

    def test_uses_wal(self, repository):
        with closing(sqlite3.connect(str(repository.db_path))) as conn:
            assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"

    def test_reopen_keeps_data(self, repository, seeded):
        again = CredentialRepository(repository.db_path)
        assert again.load_all() == seeded


# ── load_all / replace_all ──────────────────────────────────────────


class TestReplaceAll:

    def test_empty_store_loads_empty(self, repository):
        assert repository.load_all() == []

    def test_load_returns_insertion_order(self, repository):
        records = [rec("zeta", "10.0.0.9"), rec("alpha", "10.0.0.1"), rec("mid", "10.0.0.5")]
        repository.replace_all(records)
        assert repository.load_all() == records

    def test_replace_discards_previous_set(self, repository, seeded):
        new = [rec("db", "10.0.1.1")]
        repository.replace_all(new)
        assert repository.load_all() == new

    def test_replace_with_empty_set(self, repository, seeded):
        repository.replace_all([])
        assert repository.load_all() == []

    def test_same_host_may_be_renamed(self, repository, seeded):
        # Old rows are deleted inside the same transaction, so reusing a
        # host or label from the previous set is not a collision
        renamed = [rec("production", "10.0.0.1"), rec("stage", "10.0.0.2")]
        repository.replace_all(renamed)
        assert repository.load_all() == renamed

    def test_duplicate_host_rolls_back(self, repository, seeded):
        with pytest.raises(ConstraintViolationError) as exc:
            repository.replace_all([rec("a", "10.0.0.7"), rec("b", "10.0.0.7")])

        assert exc.value.kind is ConstraintKind.HOST
        assert exc.value.field == "host"
        assert exc.value.value == "10.0.0.7"
        assert exc.value.record_index == 1
        assert repository.load_all() == seeded

    def test_duplicate_label_rolls_back(self, repository, seeded):
        with pytest.raises(ConstraintViolationError) as exc:
            repository.replace_all([rec("web", "10.0.0.7"), rec("web", "10.0.0.8")])

        assert exc.value.kind is ConstraintKind.LABEL
        assert exc.value.field == "label"
        assert exc.value.value == "web"
        assert repository.load_all() == seeded

    def test_late_failure_leaves_no_partial_rows(self, repository, seeded):
        batch = [
            rec("a", "10.1.0.1"),
            rec("b", "10.1.0.2"),
            rec("c", "10.1.0.3"),
            rec("d", "10.1.0.1"),
        ]
        with pytest.raises(ConstraintViolationError):
            repository.replace_all(batch)
        assert repository.load_all() == seeded

    @pytest.mark.parametrize("field", ["label", "host", "account", "secret"])
    def test_empty_field_rejected_before_writing(self, repository, seeded, field):
        values = {"label": "x", "host": "10.9.9.9", "account": "root", "secret": "c2Vj"}
        values[field] = ""

        with pytest.raises(InvalidInputError) as exc:
            repository.replace_all([rec("ok", "10.9.9.8"), CredentialRecord(**values)])

        assert exc.value.field == field
        assert exc.value.record_index == 1
        assert repository.load_all() == seeded

    def test_constraint_message_is_friendly(self, repository):
        with pytest.raises(ConstraintViolationError) as exc:
            repository.replace_all([rec("a", "h"), rec("b", "h")])
        assert str(exc.value) == "A server with this hostname already exists."

    def test_locked_database_raises_storage_error(self, seeded, locked_repository):
        with pytest.raises(StorageError) as exc:
            locked_repository.replace_all([rec("new", "10.5.5.5")])
        assert "locked" in str(exc.value)
        assert locked_repository.load_all() == seeded


# ── delete_by_hosts ─────────────────────────────────────────────────


class TestDeleteByHosts:

    def test_deletes_matching_hosts(self, repository, seeded):
        assert repository.delete_by_hosts(["10.0.0.1"]) == 1
        assert [r.host for r in repository.load_all()] == ["10.0.0.2"]

    def test_unknown_host_is_noop(self, repository, seeded):
        assert repository.delete_by_hosts(["192.168.99.99"]) == 0
        assert repository.load_all() == seeded

    def test_mixed_known_and_unknown(self, repository, seeded):
        assert repository.delete_by_hosts(["nope", "10.0.0.2", "10.0.0.1"]) == 2
        assert repository.load_all() == []

    def test_empty_input(self, repository, seeded):
        assert repository.delete_by_hosts([]) == 0
        assert repository.load_all() == seeded

    def test_repeated_delete_is_idempotent(self, repository, seeded):
        repository.delete_by_hosts(["10.0.0.1"])
        repository.delete_by_hosts(["10.0.0.1"])
        assert [r.host for r in repository.load_all()] == ["10.0.0.2"]

    def test_bare_string_rejected(self, repository, seeded):
        with pytest.raises(InvalidInputError):
            repository.delete_by_hosts("10.0.0.1")
        assert repository.load_all() == seeded

    def test_non_string_host_rejected(self, repository, seeded):
        with pytest.raises(InvalidInputError) as exc:
            repository.delete_by_hosts(["10.0.0.1", 42])
        assert exc.value.record_index == 1
        assert repository.load_all() == seeded

    def test_locked_database_raises_storage_error(self, seeded, locked_repository):
        with pytest.raises(StorageError):
            locked_repository.delete_by_hosts(["10.0.0.1"])
        assert locked_repository.load_all() == seeded


# ── Constraint classification ───────────────────────────────────────


class TestClassifyIntegrityError:

    def _raise_from(self, repository, sql, params):
        with closing(sqlite3.connect(str(repository.db_path))) as conn:
            conn.execute("INSERT INTO servers VALUES ('h1', 'l1', 'a', 's')")
            with pytest.raises(sqlite3.IntegrityError) as exc:
                conn.execute(sql, params)
        return exc.value

    def test_primary_key_is_host(self, repository):
        err = self._raise_from(
            repository, "INSERT INTO servers VALUES (?, ?, ?, ?)", ("h1", "l2", "a", "s")
        )
        assert classify_integrity_error(err) is ConstraintKind.HOST

    def test_unique_is_label(self, repository):
        err = self._raise_from(
            repository, "INSERT INTO servers VALUES (?, ?, ?, ?)", ("h2", "l1", "a", "s")
        )
        assert classify_integrity_error(err) is ConstraintKind.LABEL

    def test_check_is_required_field(self, repository):
        err = self._raise_from(
            repository, "INSERT INTO servers VALUES (?, ?, ?, ?)", ("h3", "l3", "", "s")
        )
        assert classify_integrity_error(err) is ConstraintKind.REQUIRED_FIELD

    def test_unknown_is_generic(self):
        assert classify_integrity_error(sqlite3.IntegrityError("x")) is ConstraintKind.GENERIC
