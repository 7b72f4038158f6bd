# Core Module - Central SQLite Connection Helper
#
# Every server-vault SQLite database is opened through `connect()` from
# this module instead of raw `sqlite3.connect()`. This ensures:
#
#   - WAL journal mode (readers never see a half-written replace)
#   - busy_timeout to avoid SQLITE_BUSY under contention
#   - explicit transaction control (isolation_level=None), so callers
#     issue BEGIN / COMMIT / ROLLBACK themselves
#
# Use `transaction()` for every write that must be all-or-nothing.

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union


def connect(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and safe PRAGMAs.

    Returns:
        sqlite3.Connection in autocommit mode with WAL and busy_timeout.
    """
    conn = sqlite3.connect(str(db_path), isolation_level=None)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements as one write transaction.

    BEGIN IMMEDIATE takes the write lock up front so two racing writers
    serialize instead of failing halfway. Any exception rolls back and
    propagates.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
