# Vault - Credential Repository
# Persistent SQLite storage for the server record set.
#
# The repository is the only writer of the `servers` table. Every write is
# a single transaction, so readers only ever see a complete, constraint-
# satisfying record set (the empty set included):
#
#   replace_all      DELETE everything + INSERT the new set, all-or-nothing
#   delete_by_hosts  remove matching hosts, unknown hosts ignored
#
# Constraint failures are classified from sqlite3's extended error code
# (`sqlite_errorname`), never from the error message text.

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .errors import (
    ConstraintKind,
    ConstraintViolationError,
    InvalidInputError,
    StorageError,
)
from .models import CredentialRecord
from ..config import DEFAULT_DB_PATH
from ..core.db import connect as db_connect, transaction

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS servers (
    host TEXT PRIMARY KEY NOT NULL CHECK (length(host) > 0),
    label TEXT NOT NULL UNIQUE CHECK (length(label) > 0),
    account TEXT NOT NULL CHECK (length(account) > 0),
    secret TEXT NOT NULL CHECK (length(secret) > 0)
)
"""

_SELECT_ALL = """
SELECT label, host, account, secret
FROM servers
ORDER BY rowid
"""

_INSERT = """
INSERT INTO servers (label, host, account, secret)
VALUES (?, ?, ?, ?)
"""

_DELETE_ALL = "DELETE FROM servers"

_DELETE_BY_HOST = "DELETE FROM servers WHERE host = ?"

_ERROR_KINDS = {
    "SQLITE_CONSTRAINT_PRIMARYKEY": ConstraintKind.HOST,
    "SQLITE_CONSTRAINT_UNIQUE": ConstraintKind.LABEL,
    "SQLITE_CONSTRAINT_NOTNULL": ConstraintKind.REQUIRED_FIELD,
    "SQLITE_CONSTRAINT_CHECK": ConstraintKind.REQUIRED_FIELD,
}


def classify_integrity_error(error: sqlite3.IntegrityError) -> ConstraintKind:
    """Map an IntegrityError to the rule it broke on the servers table."""
    return _ERROR_KINDS.get(
        getattr(error, "sqlite_errorname", ""), ConstraintKind.GENERIC
    )


def host_list(hosts: Iterable[str]) -> List[str]:
    """Materialize a collection of hosts, rejecting a bare string.

    Raises:
        InvalidInputError: If ``hosts`` is a string or holds a non-string.
    """
    if isinstance(hosts, (str, bytes)):
        raise InvalidInputError(
            "Hosts must be a collection of host names, not a single string",
            field="host",
        )
    hosts = list(hosts)
    for index, host in enumerate(hosts):
        if not isinstance(host, str):
            raise InvalidInputError(
                f"Host #{index + 1} must be a string, got {type(host).__name__}",
                field="host",
                record_index=index,
            )
    return hosts


class CredentialRepository:
    """SQLite persistence for credential records.

    Opens a fresh connection per call; SQLite is fast enough for the
    expected scale (tens to hundreds of servers). Database failures other
    than constraint breaches surface as StorageError.

    Args:
        db_path: Path to SQLite database file. Defaults to ~/.server-vault/servers.db.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        """Create the servers table if it doesn't exist."""
        try:
            with closing(db_connect(self.db_path)) as conn:
                conn.execute(_CREATE_TABLE)
        except sqlite3.DatabaseError as e:
            raise self._storage_error("open", e) from e

    def load_all(self) -> List[CredentialRecord]:
        """Return the full record set in insertion order (read-only)."""
        try:
            with closing(db_connect(self.db_path)) as conn:
                rows = conn.execute(_SELECT_ALL).fetchall()
        except sqlite3.DatabaseError as e:
            raise self._storage_error("read", e) from e
        return [CredentialRecord(*row) for row in rows]

    def replace_all(self, records: Sequence[CredentialRecord]) -> None:
        """Atomically replace the whole record set.

        Raises:
            InvalidInputError: If any record has an empty field (nothing
                is written).
            ConstraintViolationError: If the set breaks a store rule; the
                transaction is rolled back and the prior set is intact.
            StorageError: If the database cannot be written (locked,
                read-only, malformed); the prior set is intact.
        """
        for index, record in enumerate(records):
            empty = record.empty_fields()
            if empty:
                raise InvalidInputError(
                    f"Record {index} ({record.host or record.label or '?'}): "
                    f"'{empty[0]}' must not be empty",
                    field=empty[0],
                    record_index=index,
                )

        index = -1
        try:
            with closing(db_connect(self.db_path)) as conn:
                with transaction(conn):
                    conn.execute(_DELETE_ALL)
                    for index, record in enumerate(records):
                        conn.execute(
                            _INSERT,
                            (record.label, record.host, record.account, record.secret),
                        )
        except sqlite3.IntegrityError as e:
            raise self._constraint_error(e, records, index) from None
        except sqlite3.DatabaseError as e:
            raise self._storage_error("write", e) from e

        logger.debug("Replaced server set (%d records)", len(records))

    def delete_by_hosts(self, hosts: Iterable[str]) -> int:
        """Delete every record whose host is listed; unknown hosts are ignored.

        Returns:
            Number of records removed.

        Raises:
            InvalidInputError: If ``hosts`` is a bare string or holds a
                non-string.
            StorageError: If the database cannot be written.
        """
        hosts = host_list(hosts)
        if not hosts:
            return 0

        try:
            with closing(db_connect(self.db_path)) as conn:
                before = conn.total_changes
                with transaction(conn):
                    conn.executemany(_DELETE_BY_HOST, [(host,) for host in hosts])
                removed = conn.total_changes - before
        except sqlite3.DatabaseError as e:
            raise self._storage_error("write", e) from e

        logger.debug("Deleted %d of %d requested hosts", removed, len(hosts))
        return removed

    def _storage_error(self, action: str, error: sqlite3.DatabaseError) -> StorageError:
        logger.error("Cannot %s %s: %s", action, self.db_path, error)
        return StorageError(f"Cannot {action} vault database: {error}")

    @staticmethod
    def _constraint_error(
        error: sqlite3.IntegrityError,
        records: Sequence[CredentialRecord],
        index: int,
    ) -> ConstraintViolationError:
        kind = classify_integrity_error(error)
        value = None
        if 0 <= index < len(records):
            if kind is ConstraintKind.GENERIC:
                # The table was emptied first, so a collision is with an
                # earlier row of the same batch
                earlier = records[:index]
                if any(r.host == records[index].host for r in earlier):
                    kind = ConstraintKind.HOST
                elif any(r.label == records[index].label for r in earlier):
                    kind = ConstraintKind.LABEL
            if kind is ConstraintKind.HOST:
                value = records[index].host
            elif kind is ConstraintKind.LABEL:
                value = records[index].label
        return ConstraintViolationError(kind, value=value, record_index=index)
