"""Data models for count files and import results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LineKind(Enum):
    """Shape of one count-file line after comment stripping."""

    IGNORABLE = "ignorable"
    BLOCK = "block"
    ENTRY = "entry"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ParsedLine:
    """A classified count-file line."""

    kind: LineKind
    text: str                     # line with the trailing comment removed
    name: str | None = None       # block name (BLOCK) or device name (ENTRY)
    count: str | None = None      # decimal digits as written (ENTRY only)


@dataclass(frozen=True)
class Entry:
    """One device count inside a block."""

    device: str
    count: str

    def __str__(self) -> str:
        return f"{self.device}: {self.count}"


@dataclass
class ImportReport:
    """What a single import pass did."""

    lines: int = 0
    ignorable: int = 0
    overwritten: int = 0
    unrecognized: list[int] = field(default_factory=list)   # 1-based line numbers
    entries: dict[str, int] = field(default_factory=dict)   # block -> distinct devices

    @property
    def blocks(self) -> list[str]:
        """Block names in order of first appearance."""
        return list(self.entries)

    @property
    def total_entries(self) -> int:
        """Distinct (block, device) keys written."""
        return sum(self.entries.values())
