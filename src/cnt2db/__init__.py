"""Block count files in an embedded key-value database.

Count file (input):
    # comments run to end of line
    block: cpu
    core0: 4        # four cores
    core1: 8
    block: gpu
    unit0: 2

Database layout (SQLite file):
    namespaces(name)                 one row per block
    entries(namespace, key, value)   one row per device; value is the count as text

Import is a single transaction committed at end of file; queries run inside
one read-only transaction held for the whole interactive session.
"""

from cnt2db.errors import (
    Cnt2dbError,
    OpenError,
    SourceReadError,
    StructuralError,
    TransactionError,
    UsageError,
)
from cnt2db.importer import import_file, import_lines
from cnt2db.parser import classify_line
from cnt2db.query import QuerySession, run_query
from cnt2db.store import MemoryStore, SQLiteStore, Store, open_store

__all__ = [
    "Cnt2dbError",
    "MemoryStore",
    "OpenError",
    "QuerySession",
    "SQLiteStore",
    "SourceReadError",
    "Store",
    "StructuralError",
    "TransactionError",
    "UsageError",
    "classify_line",
    "import_file",
    "import_lines",
    "open_store",
    "run_query",
]
