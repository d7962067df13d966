"""Line classifier for count files.

Count file grammar (one construct per line):

    # comment                 ignored, as is any blank line
    block: cpu                block header; opens (or re-opens) block "cpu"
    core0: 4   # four cores   count entry; device "core0" -> "4" in the current block

A comment runs from the first unescaped '#' to the end of the line; '\\#'
is not a comment start. Lines that fit neither shape are unrecognized and
left to the caller to skip.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from cnt2db.models import LineKind, ParsedLine

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

COMMENT_MARKER = "#"
_ESCAPE = "\\"

# Block header must be tried first: "block: 5" also fits the entry shape.
_BLOCK_RE = re.compile(r"^\s*block\s*:\s*([A-Za-z0-9_]+)\s*$")
_ENTRY_RE = re.compile(r"^\s*([A-Za-z0-9_]+)\s*:\s*([0-9]+)\s*$")


def strip_comment(line: str) -> str:
    """Return line without its trailing newline and unescaped comment."""
    line = line.rstrip("\r\n")
    start = 0
    while True:
        pos = line.find(COMMENT_MARKER, start)
        if pos < 0:
            return line
        if pos > 0 and line[pos - 1] == _ESCAPE:
            start = pos + 1
            continue
        return line[:pos]


def classify_line(line: str) -> ParsedLine:
    """Classify one raw line. Pure; never raises on malformed input."""
    text = strip_comment(line)
    if not text.strip():
        return ParsedLine(LineKind.IGNORABLE, text)

    m = _BLOCK_RE.match(text)
    if m:
        return ParsedLine(LineKind.BLOCK, text, name=m.group(1))

    m = _ENTRY_RE.match(text)
    if m:
        return ParsedLine(LineKind.ENTRY, text, name=m.group(1), count=m.group(2))

    return ParsedLine(LineKind.UNRECOGNIZED, text)


def iter_parsed(lines: Iterable[str]) -> Iterator[tuple[int, ParsedLine]]:
    """Yield (line_number, ParsedLine) with 1-based line numbers."""
    for number, line in enumerate(lines, start=1):
        yield number, classify_line(line)
