"""
Shared test fixtures.

Importer and query tests run against MemoryStore unless they exercise the
SQLite file format; those use a database under tmp_path.
"""

import pytest

from cnt2db.store import MemoryStore

SAMPLE = "block: cpu\ncore0: 4 # four cores\ncore1: 8\nblock: gpu\nunit0: 2\n"


class ScriptedInput:
    """Stands in for input(): replays lines, then raises EOFError."""

    def __init__(self, *lines: str, interrupt: bool = False):
        self._lines = list(lines)
        self._interrupt = interrupt
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._lines:
            return self._lines.pop(0)
        if self._interrupt:
            raise KeyboardInterrupt
        raise EOFError


class Output:
    """Collects echoed lines."""

    def __init__(self):
        self.lines: list[str] = []

    def __call__(self, text: str) -> None:
        self.lines.append(text)


@pytest.fixture
def memory_store():
    store = MemoryStore()
    yield store
    store.close()


@pytest.fixture
def sample():
    return SAMPLE


@pytest.fixture
def output():
    return Output()


@pytest.fixture
def scripted():
    """Factory for ScriptedInput readers."""
    return ScriptedInput


@pytest.fixture
def count_file(tmp_path):
    """Factory writing a count file and returning its path."""

    def _write(text: str = SAMPLE, name: str = "counts.txt"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
