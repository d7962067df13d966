"""Import a count file into a count database.

Entry points:
    import_lines(lines, tx)            # one pass over any line iterable, caller owns tx
    import_file(count_file, db_path)   # open both files, one write transaction, commit

An import is all-or-nothing: the whole file is written inside a single
transaction that is committed only after the last line was read. A failed
import leaves the previous database contents, or no file at all when the
database did not exist before.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from cnt2db.errors import OpenError, SourceReadError, StructuralError, TransactionError
from cnt2db.models import ImportReport, LineKind
from cnt2db.parser import iter_parsed
from cnt2db.store import open_store

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from cnt2db.store import Namespace, Transaction

logger = logging.getLogger("cnt2db.importer")

# What to do when the target database already holds blocks.
ON_EXISTING = ("truncate", "error")

_SQLITE_SIDE_FILES = ("-journal", "-wal", "-shm")


def import_lines(lines: Iterable[str], tx: Transaction, source: str = "<input>") -> ImportReport:
    """Write the blocks and entries found in lines through tx.

    Raises StructuralError on a count entry that precedes every block header.
    Does not commit; the caller decides what happens to tx.
    """
    report = ImportReport()
    current: Namespace | None = None
    devices: dict[str, set[str]] = {}

    for number, parsed in iter_parsed(lines):
        report.lines = number

        if parsed.kind is LineKind.IGNORABLE:
            report.ignorable += 1

        elif parsed.kind is LineKind.BLOCK:
            current = tx.create_namespace(parsed.name)
            devices.setdefault(parsed.name, set())
            report.entries.setdefault(parsed.name, 0)

        elif parsed.kind is LineKind.ENTRY:
            if current is None:
                raise StructuralError(number, parsed.text)
            seen = devices[current.name]
            if parsed.name in seen:
                report.overwritten += 1
            else:
                seen.add(parsed.name)
                report.entries[current.name] += 1
            current.put(parsed.name, parsed.count)

        else:
            report.unrecognized.append(number)
            logger.debug("%s:%d: skipping unrecognized line %r", source, number, parsed.text)

    return report


def import_file(
    count_file: Path | str,
    db_path: Path | str,
    on_existing: str = "truncate",
) -> ImportReport:
    """Parse count_file and store its blocks in the database at db_path.

    on_existing: "truncate" replaces whatever db_path already holds (within
    the import transaction); "error" refuses to touch a non-empty database.
    """
    if on_existing not in ON_EXISTING:
        msg = f"on_existing must be one of {', '.join(ON_EXISTING)}, got {on_existing!r}"
        raise ValueError(msg)

    count_file = Path(count_file)
    db_path = Path(db_path)

    try:
        src = count_file.open(encoding="utf-8")
    except OSError as exc:
        raise OpenError(str(count_file), exc) from exc

    with src:
        created = not db_path.exists()
        try:
            store = open_store(db_path, "w")
        except OpenError:
            if created:
                _remove_db(db_path)
            raise

        logger.info("importing %s into %s", count_file, db_path)
        committed = False
        try:
            with store.transaction(writable=True) as tx:
                existing = tx.namespaces()
                if existing:
                    if on_existing == "error":
                        raise OpenError(str(db_path), f"database already holds {len(existing)} blocks")
                    tx.clear()
                report = import_lines(_read_lines(src, count_file), tx, source=str(count_file))
            committed = True
        except TransactionError as exc:
            raise TransactionError(
                f"{exc.message} (importing {count_file} into {db_path})",
                {**exc.details, "source": str(count_file), "target": str(db_path)},
            ) from exc
        finally:
            store.close()
            if not committed:
                logger.info("import into %s rolled back", db_path)
                if created:
                    _remove_db(db_path)

    logger.info(
        "committed %d entries in %d blocks to %s (%d unrecognized lines skipped)",
        report.total_entries, len(report.blocks), db_path, len(report.unrecognized),
    )
    return report


def _read_lines(f: TextIO, path: Path) -> Iterator[str]:
    """Yield lines from f, turning read failures into SourceReadError."""
    try:
        yield from f
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadError(str(path), exc) from exc


def _remove_db(db_path: Path) -> None:
    """Delete a database file created by a failed import."""
    db_path.unlink(missing_ok=True)
    for suffix in _SQLITE_SIDE_FILES:
        db_path.with_name(db_path.name + suffix).unlink(missing_ok=True)
