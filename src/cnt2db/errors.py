"""Errors raised by the importer, the store and the query session.

Everything fatal derives from Cnt2dbError so the CLI can render a single
message for any failure below it. A lookup of a missing block and an
interrupt at the prompt are normal outcomes and have no exception here.
"""

from __future__ import annotations

from typing import Any


class Cnt2dbError(Exception):
    """Base exception for cnt2db failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UsageError(Cnt2dbError):
    """Contradictory or incomplete command-line mode flags."""


class OpenError(Cnt2dbError):
    """A source file or database could not be opened or created."""

    def __init__(self, path: str, cause: BaseException | str) -> None:
        super().__init__(f"cannot open {path}: {cause}", {"path": path})
        self.path = path
        self.cause = cause


class StructuralError(Cnt2dbError):
    """A count entry appeared before any block header."""

    def __init__(self, line_number: int, line: str) -> None:
        super().__init__(
            f"line {line_number}: count entry outside of any block: {line.strip()!r}",
            {"line_number": line_number, "line": line},
        )
        self.line_number = line_number
        self.line = line


class SourceReadError(Cnt2dbError):
    """Reading the count file failed part-way through."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"error reading {path}: {cause}", {"path": path})
        self.path = path
        self.cause = cause


class TransactionError(Cnt2dbError):
    """A store write, commit or rollback failed."""
