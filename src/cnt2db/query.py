"""Interactive read-only queries against a count database.

One read-only transaction is held for the whole session, so every lookup
sees the same snapshot. Input is one bare word per line:

    quit | q | exit     leave the session (as does end of input or Ctrl-C)
    <block>             list "device: count" for every entry of the block

Anything else is ignored.
"""

from __future__ import annotations

import contextlib
import logging
import re
from typing import TYPE_CHECKING

import click

from cnt2db.models import Entry
from cnt2db.store import open_store

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from cnt2db.store import Transaction

logger = logging.getLogger("cnt2db.query")

DEFAULT_PROMPT = "> "
EXIT_WORDS = frozenset({"quit", "q", "exit"})

_WORD_RE = re.compile(r"^[A-Za-z0-9_]+$")

# Loading readline gives input() line editing and history.
with contextlib.suppress(ImportError):
    import readline  # noqa: F401


class QuerySession:
    """Prompt loop over an open read-only transaction.

    reader follows the builtin input() contract: it returns one line and
    raises EOFError at end of input or KeyboardInterrupt on interrupt.
    """

    def __init__(
        self,
        tx: Transaction,
        prompt: str = DEFAULT_PROMPT,
        reader: Callable[[str], str] = input,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self.tx = tx
        self.prompt = prompt
        self._reader = reader
        self._echo = echo

    def run(self) -> None:
        """Serve lookups until an exit word, end of input or an interrupt."""
        while True:
            try:
                line = self._reader(self.prompt)
            except (EOFError, KeyboardInterrupt):
                logger.debug("input closed, leaving session")
                return
            word = line.strip()
            if word in EXIT_WORDS:
                return
            if _WORD_RE.match(word):
                self.lookup(word)

    def lookup(self, block: str) -> bool:
        """Echo the entries of block. Returns False if it does not exist."""
        ns = self.tx.namespace(block)
        if ns is None:
            self._echo(f"{block} does not exist")
            return False
        for device, count in ns.items():
            self._echo(str(Entry(device, count)))
        return True


def run_query(
    db_path: Path | str,
    prompt: str = DEFAULT_PROMPT,
    reader: Callable[[str], str] = input,
    echo: Callable[[str], None] = click.echo,
) -> None:
    """Open db_path read-only and run an interactive session on it.

    Raises OpenError if the database cannot be opened.
    """
    with open_store(db_path, "r") as store, store.transaction() as tx:
        logger.info("query session on %s (%d blocks)", db_path, len(tx.namespaces()))
        QuerySession(tx, prompt=prompt, reader=reader, echo=echo).run()
