"""
Tests for count-file import.

import_lines runs against MemoryStore; import_file against SQLite files.
"""

import logging
import sqlite3

import pytest

from cnt2db.errors import OpenError, SourceReadError, StructuralError, TransactionError
from cnt2db.importer import import_file, import_lines
from cnt2db.store import MemoryStore, open_store


def _import(store, text):
    with store.transaction(writable=True) as tx:
        return import_lines(text.splitlines(keepends=True), tx)


def _contents(db_path):
    with open_store(db_path) as store, store.transaction() as tx:
        return {name: list(tx.namespace(name).items()) for name in tx.namespaces()}


def _tables(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")]
    finally:
        conn.close()


class TestImportLines:
    """Tests for the single import pass."""

    def test_sample(self, memory_store, sample):
        """The sample file lands in two namespaces."""
        report = _import(memory_store, sample)
        assert memory_store.data == {"cpu": {"core0": "4", "core1": "8"}, "gpu": {"unit0": "2"}}
        assert report.blocks == ["cpu", "gpu"]
        assert report.entries == {"cpu": 2, "gpu": 1}
        assert report.total_entries == 3
        assert report.lines == 5

    def test_repeated_header_reuses_namespace(self, memory_store):
        """A second 'block: X' adds to the same namespace."""
        text = "block: cpu\ncore0: 4\nblock: gpu\nunit0: 2\nblock: cpu\ncore1: 8\n"
        report = _import(memory_store, text)
        assert memory_store.data["cpu"] == {"core0": "4", "core1": "8"}
        assert sorted(memory_store.data) == ["cpu", "gpu"]
        assert report.entries == {"cpu": 2, "gpu": 1}

    def test_last_write_wins(self, memory_store):
        """Only the last count for a device survives."""
        report = _import(memory_store, "block: cpu\ncore0: 4\ncore0: 16\n")
        assert memory_store.data == {"cpu": {"core0": "16"}}
        assert report.overwritten == 1
        assert report.total_entries == 1

    def test_last_write_wins_across_reopened_block(self, memory_store):
        """Overwrites also apply after a block is reopened."""
        _import(memory_store, "block: cpu\ncore0: 4\nblock: gpu\nblock: cpu\ncore0: 5\n")
        assert memory_store.data["cpu"] == {"core0": "5"}

    def test_comments_and_blank_lines(self, memory_store):
        """Comment-only, blank and comment-emptied lines contribute nothing."""
        text = "# header comment\n\nblock: cpu   # the cpu\n   \n    # indented\ncore0: 4\n"
        report = _import(memory_store, text)
        assert memory_store.data == {"cpu": {"core0": "4"}}
        assert report.ignorable == 4
        assert report.unrecognized == []

    def test_comment_before_block_is_fine(self, memory_store):
        """A comment that looks like an entry does not trip the structure check."""
        _import(memory_store, "# core0: 4\nblock: cpu\n")
        assert memory_store.data == {"cpu": {}}

    def test_unrecognized_lines_skipped(self, memory_store, caplog):
        """Malformed lines are skipped and logged at debug level."""
        caplog.set_level(logging.DEBUG, logger="cnt2db.importer")
        text = "block: cpu\ncore0 = 4\ncore1: 8\nsome stray text\n"
        report = _import(memory_store, text)
        assert memory_store.data == {"cpu": {"core1": "8"}}
        assert report.unrecognized == [2, 4]
        assert "skipping unrecognized line" in caplog.text

    def test_unrecognized_before_block_is_fine(self, memory_store):
        """Only count entries need a current block."""
        _import(memory_store, "garbage here\nblock: cpu\ncore0: 1\n")
        assert memory_store.data == {"cpu": {"core0": "1"}}

    def test_entry_before_block(self, memory_store):
        """A count entry before any header raises StructuralError."""
        with pytest.raises(StructuralError) as exc_info:
            _import(memory_store, "# leading comment\ncore0: 4\nblock: cpu\n")
        assert exc_info.value.line_number == 2
        assert "core0: 4" in exc_info.value.line
        assert memory_store.data == {}

    def test_empty_input(self, memory_store):
        """An empty file imports nothing."""
        report = _import(memory_store, "")
        assert memory_store.data == {}
        assert report.lines == 0
        assert report.blocks == []

    def test_counts_stored_as_written(self, memory_store):
        """Counts keep their textual form, leading zeros included."""
        _import(memory_store, "block: disk\nsda: 007\nhuge: 123456789012345678901234567890\n")
        assert memory_store.data["disk"] == {"sda": "007", "huge": "123456789012345678901234567890"}

    def test_does_not_commit(self):
        """import_lines leaves commit to the caller."""
        store = MemoryStore()
        tx = store.begin(writable=True)
        import_lines(["block: cpu\n", "core0: 4\n"], tx)
        tx.rollback()
        assert store.data == {}


class TestImportFile:
    """Tests for import_file against SQLite."""

    def test_sample_roundtrip(self, tmp_path, count_file):
        """Imported blocks can be read back in key order."""
        db = tmp_path / "counts.db"
        report = import_file(count_file(), db)
        assert report.total_entries == 3
        assert _contents(db) == {
            "cpu": [("core0", "4"), ("core1", "8")],
            "gpu": [("unit0", "2")],
        }

    def test_key_order_not_file_order(self, tmp_path, count_file):
        """Entries come back in natural key order."""
        db = tmp_path / "counts.db"
        import_file(count_file("block: b\nzeta: 1\nalpha: 2\nMid: 3\n"), db)
        assert _contents(db) == {"b": [("Mid", "3"), ("alpha", "2"), ("zeta", "1")]}

    def test_structural_error_leaves_no_file(self, tmp_path, count_file):
        """A failed import into a new path leaves nothing behind."""
        db = tmp_path / "counts.db"
        with pytest.raises(StructuralError):
            import_file(count_file("core0: 4\nblock: cpu\n"), db)
        assert not db.exists()
        assert not (tmp_path / "counts.db-journal").exists()

    def test_structural_error_keeps_previous_contents(self, tmp_path, count_file):
        """A failed re-import leaves the old database untouched."""
        db = tmp_path / "counts.db"
        import_file(count_file(), db)
        bad = count_file("oops: 1\nblock: new\nn: 2\n", name="worse.txt")
        with pytest.raises(StructuralError):
            import_file(bad, db)
        assert _contents(db)["cpu"] == [("core0", "4"), ("core1", "8")]

    def test_structural_error_leaves_empty_file_untouched(self, tmp_path, count_file):
        """A failed import into an existing empty file adds no tables to it."""
        db = tmp_path / "counts.db"
        db.touch()
        with pytest.raises(StructuralError):
            import_file(count_file("core0: 4\nblock: cpu\n"), db)
        assert db.exists()
        assert _tables(db) == []

    def test_structural_error_leaves_foreign_database_untouched(self, tmp_path, count_file):
        """A failed import into another SQLite database leaves its schema as it was."""
        db = tmp_path / "other.db"
        conn = sqlite3.connect(db)
        conn.execute("CREATE TABLE t (x)")
        conn.commit()
        conn.close()
        with pytest.raises(StructuralError):
            import_file(count_file("core0: 4\nblock: cpu\n"), db)
        assert _tables(db) == ["t"]

    def test_reimport_truncates(self, tmp_path, count_file):
        """Re-importing replaces the previous contents."""
        db = tmp_path / "counts.db"
        import_file(count_file(), db)
        import_file(count_file("block: tpu\nchip0: 1\n", name="second.txt"), db)
        assert _contents(db) == {"tpu": [("chip0", "1")]}

    def test_reimport_error_policy(self, tmp_path, count_file):
        """on_existing='error' refuses a non-empty database."""
        db = tmp_path / "counts.db"
        import_file(count_file(), db)
        with pytest.raises(OpenError, match="already holds 2 blocks"):
            import_file(count_file("block: tpu\nchip0: 1\n", name="second.txt"), db, on_existing="error")
        assert sorted(_contents(db)) == ["cpu", "gpu"]

    def test_error_policy_allows_new_file(self, tmp_path, count_file):
        """on_existing='error' is fine for a fresh database."""
        db = tmp_path / "counts.db"
        import_file(count_file(), db, on_existing="error")
        assert sorted(_contents(db)) == ["cpu", "gpu"]

    def test_invalid_policy(self, tmp_path, count_file):
        """Unknown on_existing values are rejected before any I/O."""
        db = tmp_path / "counts.db"
        with pytest.raises(ValueError):
            import_file(count_file(), db, on_existing="append")
        assert not db.exists()

    def test_missing_count_file(self, tmp_path):
        """A missing source raises OpenError and creates no database."""
        db = tmp_path / "counts.db"
        with pytest.raises(OpenError) as exc_info:
            import_file(tmp_path / "nope.txt", db)
        assert exc_info.value.path == str(tmp_path / "nope.txt")
        assert not db.exists()

    def test_unopenable_database(self, tmp_path, count_file):
        """A database path in a missing directory raises OpenError."""
        db = tmp_path / "no" / "such" / "dir" / "counts.db"
        with pytest.raises(OpenError):
            import_file(count_file(), db)
        assert not db.exists()

    def test_decode_error_aborts(self, tmp_path):
        """A read failure mid-file rolls back and reports SourceReadError."""
        src = tmp_path / "counts.txt"
        src.write_bytes(b"block: cpu\ncore0: 4\ncore1: \xff\xfe\n")
        db = tmp_path / "counts.db"
        with pytest.raises(SourceReadError) as exc_info:
            import_file(src, db)
        assert exc_info.value.path == str(src)
        assert not db.exists()

    def test_store_failure_carries_paths(self, tmp_path, count_file, monkeypatch):
        """Store errors are re-raised with source and target paths."""
        from cnt2db.store import SQLiteNamespace

        def broken_put(self, key, value):
            raise TransactionError("disk full")

        monkeypatch.setattr(SQLiteNamespace, "put", broken_put)
        src = count_file()
        db = tmp_path / "counts.db"
        with pytest.raises(TransactionError) as exc_info:
            import_file(src, db)
        assert exc_info.value.details["source"] == str(src)
        assert exc_info.value.details["target"] == str(db)
        assert "disk full" in str(exc_info.value)
        assert not db.exists()
