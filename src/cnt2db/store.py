"""Key-value store with one namespace per block.

The importer and the query session only talk to the abstract Store /
Transaction / Namespace contract below:

    with open_store("counts.db", "w") as store, store.transaction(writable=True) as tx:
        tx.create_namespace("cpu").put("core0", "4")

    with open_store("counts.db") as store, store.transaction() as tx:
        ns = tx.namespace("cpu")          # None if the block was never imported
        list(ns.items())                  # [("core0", "4")], natural key order

Two implementations: SQLiteStore (durable file) and MemoryStore (tests).
Natural key order is the lexicographic byte order of the UTF-8 encoded keys;
both SQLite's BINARY collation and Python str ordering give exactly that.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cnt2db.db import ensure_schema, get_conn, get_conn_readonly, has_schema
from cnt2db.errors import TransactionError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger("cnt2db.store")


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class Namespace(ABC):
    """The entries of one block, seen through a transaction."""

    name: str

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Write key, replacing any previous value."""

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def items(self) -> Iterator[tuple[str, str]]:
        """Yield (key, value) pairs in natural key order."""


class Transaction(ABC):
    """A read-only or writable view of the store.

    commit() and rollback() end the transaction; rollback() on an ended
    transaction is a no-op so it can sit in a finally block.
    """

    def __init__(self, writable: bool) -> None:
        self.writable = writable
        self.closed = False

    @abstractmethod
    def namespace(self, name: str) -> Namespace | None: ...

    @abstractmethod
    def create_namespace(self, name: str) -> Namespace:
        """Return namespace name, creating it if absent."""

    @abstractmethod
    def namespaces(self) -> list[str]:
        """Sorted names of all namespaces."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every namespace and entry."""

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    def commit(self) -> None:
        if self.closed:
            raise TransactionError("transaction already closed")
        if not self.writable:
            raise TransactionError("cannot commit a read-only transaction")
        self._commit()
        self.closed = True

    def rollback(self) -> None:
        if self.closed:
            return
        try:
            self._rollback()
        finally:
            self.closed = True

    def _require_writable(self) -> None:
        if self.closed:
            raise TransactionError("transaction already closed")
        if not self.writable:
            raise TransactionError("transaction is read-only")


class Store(ABC):
    """An open database."""

    path: str

    @abstractmethod
    def begin(self, writable: bool = False) -> Transaction: ...

    @abstractmethod
    def close(self) -> None: ...

    @contextlib.contextmanager
    def transaction(self, writable: bool = False) -> Iterator[Transaction]:
        """Commit a writable transaction on clean exit, roll back otherwise.

        Read-only transactions are always released with rollback().
        """
        tx = self.begin(writable)
        try:
            yield tx
            if writable:
                tx.commit()
        finally:
            tx.rollback()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


class SQLiteNamespace(Namespace):
    def __init__(self, tx: SQLiteTransaction, name: str) -> None:
        self._tx = tx
        self.name = name

    def put(self, key: str, value: str) -> None:
        self._tx._require_writable()
        self._tx._execute(
            "INSERT OR REPLACE INTO entries (namespace, key, value) VALUES (?, ?, ?)",
            (self.name, key, value),
        )

    def get(self, key: str) -> str | None:
        row = self._tx._execute(
            "SELECT value FROM entries WHERE namespace = ? AND key = ?",
            (self.name, key),
        ).fetchone()
        return row[0] if row else None

    def items(self) -> Iterator[tuple[str, str]]:
        cur = self._tx._execute(
            "SELECT key, value FROM entries WHERE namespace = ? ORDER BY key",
            (self.name,),
        )
        for key, value in cur:
            yield key, value


class SQLiteTransaction(Transaction):
    def __init__(self, conn: sqlite3.Connection, path: str, writable: bool) -> None:
        super().__init__(writable)
        self._conn = conn
        self._path = path
        if writable:
            self._execute("BEGIN IMMEDIATE")
            try:
                ensure_schema(conn)
            except sqlite3.Error as exc:
                conn.execute("ROLLBACK")
                raise TransactionError(f"{path}: {exc}", {"path": path}) from exc
            self._has_schema = True
        else:
            self._execute("BEGIN")
            # A deferred transaction takes its snapshot on the first read.
            try:
                self._has_schema = has_schema(conn)
            except sqlite3.Error as exc:
                conn.execute("ROLLBACK")
                raise TransactionError(f"{path}: {exc}", {"path": path}) from exc

    def _execute(self, sql: str, params: tuple[str, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise TransactionError(f"{self._path}: {exc}", {"path": self._path}) from exc

    def namespace(self, name: str) -> SQLiteNamespace | None:
        if not self._has_schema:
            return None
        row = self._execute("SELECT 1 FROM namespaces WHERE name = ?", (name,)).fetchone()
        return SQLiteNamespace(self, name) if row else None

    def create_namespace(self, name: str) -> SQLiteNamespace:
        self._require_writable()
        self._execute("INSERT OR IGNORE INTO namespaces (name) VALUES (?)", (name,))
        return SQLiteNamespace(self, name)

    def namespaces(self) -> list[str]:
        if not self._has_schema:
            return []
        return [r[0] for r in self._execute("SELECT name FROM namespaces ORDER BY name")]

    def clear(self) -> None:
        self._require_writable()
        self._execute("DELETE FROM entries")
        self._execute("DELETE FROM namespaces")
        logger.info("cleared existing contents of %s", self._path)

    def _commit(self) -> None:
        self._execute("COMMIT")

    def _rollback(self) -> None:
        if self._conn.in_transaction:
            self._execute("ROLLBACK")


class SQLiteStore(Store):
    """A count database in a single SQLite file."""

    def __init__(self, conn: sqlite3.Connection, path: str, writable: bool) -> None:
        self._conn = conn
        self.path = path
        self.writable = writable

    def begin(self, writable: bool = False) -> SQLiteTransaction:
        if writable and not self.writable:
            raise TransactionError(f"{self.path}: database is open read-only")
        return SQLiteTransaction(self._conn, self.path, writable)

    def close(self) -> None:
        self._conn.close()


def open_store(path: Path | str, mode: str = "r") -> SQLiteStore:
    """Open a count database.

    mode "w" creates the file if needed and allows writable transactions;
    mode "r" requires an existing count database and is read-only.
    Raises OpenError if the file cannot be opened.
    """
    if mode == "w":
        return SQLiteStore(get_conn(path), str(path), writable=True)
    if mode == "r":
        return SQLiteStore(get_conn_readonly(path), str(path), writable=False)
    msg = f"invalid mode {mode!r} (expected 'r' or 'w')"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class MemoryNamespace(Namespace):
    def __init__(self, tx: MemoryTransaction, name: str, data: dict[str, str]) -> None:
        self._tx = tx
        self._data = data
        self.name = name

    def put(self, key: str, value: str) -> None:
        self._tx._require_writable()
        self._data[key] = value

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def items(self) -> Iterator[tuple[str, str]]:
        yield from sorted(self._data.items())


class MemoryTransaction(Transaction):
    """Works on a private copy of the store; commit swaps it in."""

    def __init__(self, store: MemoryStore, writable: bool) -> None:
        super().__init__(writable)
        self._store = store
        self._data = {name: dict(entries) for name, entries in store.data.items()}

    def namespace(self, name: str) -> MemoryNamespace | None:
        if name not in self._data:
            return None
        return MemoryNamespace(self, name, self._data[name])

    def create_namespace(self, name: str) -> MemoryNamespace:
        self._require_writable()
        return MemoryNamespace(self, name, self._data.setdefault(name, {}))

    def namespaces(self) -> list[str]:
        return sorted(self._data)

    def clear(self) -> None:
        self._require_writable()
        self._data.clear()

    def _commit(self) -> None:
        self._store.data = self._data

    def _rollback(self) -> None:
        self._data = {}


class MemoryStore(Store):
    """Dict-backed store with the same transaction semantics as SQLiteStore."""

    def __init__(self, path: str = ":memory:", data: dict[str, dict[str, str]] | None = None) -> None:
        self.path = path
        self.data: dict[str, dict[str, str]] = data if data is not None else {}
        self.closed = False

    def begin(self, writable: bool = False) -> MemoryTransaction:
        if self.closed:
            raise TransactionError(f"{self.path}: store is closed")
        return MemoryTransaction(self, writable)

    def close(self) -> None:
        self.closed = True
