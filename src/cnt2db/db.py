"""SQLite connections for count databases.

Connections are opened with isolation_level=None so that the store issues
BEGIN/COMMIT/ROLLBACK itself and one transaction can span a whole import or
query session. Opening never writes: the schema is created by the first
writable transaction (ensure_schema), so it rolls back with a failed import.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from cnt2db.errors import OpenError

# Run one by one: executescript() would commit the surrounding transaction.
SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS namespaces (
        name TEXT PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS entries (
        namespace TEXT NOT NULL REFERENCES namespaces(name) ON DELETE CASCADE,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (namespace, key)
    )
    """,
)


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the count tables inside the caller's open transaction."""
    for statement in SCHEMA:
        conn.execute(statement)


def has_schema(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT count(*) FROM sqlite_master WHERE type='table' AND name IN ('namespaces', 'entries')"
    ).fetchone()
    return row[0] == 2


def get_conn(db_path: Path | str) -> sqlite3.Connection:
    """Open db_path for writing; the file is created if absent.

    Foreign key enforcement is on so clearing namespaces cascades to entries.
    """
    db_path = Path(db_path)
    if db_path.is_dir():
        raise OpenError(str(db_path), "is a directory")
    try:
        conn = sqlite3.connect(str(db_path), isolation_level=None)
    except sqlite3.Error as exc:
        raise OpenError(str(db_path), exc) from exc
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        # Reading the header rejects files that are not SQLite databases.
        has_schema(conn)
    except sqlite3.Error as exc:
        conn.close()
        raise OpenError(str(db_path), exc) from exc
    return conn


def get_conn_readonly(db_path: Path | str) -> sqlite3.Connection:
    """Open an existing count database read-only."""
    db_path = Path(db_path)
    if not db_path.is_file():
        raise OpenError(str(db_path), "no such database file")
    try:
        conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True, isolation_level=None)
    except sqlite3.Error as exc:
        raise OpenError(str(db_path), exc) from exc
    try:
        present = has_schema(conn)
    except sqlite3.Error as exc:
        conn.close()
        raise OpenError(str(db_path), exc) from exc
    if not present:
        conn.close()
        raise OpenError(str(db_path), "not a count database")
    return conn
