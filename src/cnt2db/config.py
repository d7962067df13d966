"""Cnt2dbConfig: optional project-local settings.

cnt2db looks for cnt2db.toml in the working directory and its parents. All
keys are optional; command-line flags override them.

cnt2db.toml example:

    [cnt2db]
    prompt = "> "            # interactive prompt
    log_level = "WARNING"    # DEBUG | INFO | WARNING | ERROR

    [import]
    on_existing = "truncate" # "truncate" replaces an existing database, "error" refuses
    summary = false          # print a table of imported blocks
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cnt2db.importer import ON_EXISTING
from cnt2db.query import DEFAULT_PROMPT

_CONFIG_FILENAME = "cnt2db.toml"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ImportConfig:
    on_existing: str = "truncate"
    summary: bool = False


@dataclass
class Cnt2dbConfig:
    """Resolved configuration."""

    root: Path                      # directory searched from (or holding cnt2db.toml)
    path: Path | None = None        # cnt2db.toml, if one was found
    prompt: str = DEFAULT_PROMPT
    log_level: str = "WARNING"
    imports: ImportConfig = field(default_factory=ImportConfig)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def load_config(root: Path | str | None = None) -> Cnt2dbConfig:
    """Load cnt2db.toml from root (or search upward from cwd if root is None).

    Raises ValueError on malformed TOML or invalid values.
    """
    start = Path(root).resolve() if root else Path.cwd()
    config_path = _find_config(start)

    raw: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"{config_path}: {exc}"
            raise ValueError(msg) from exc

    main_section = raw.get("cnt2db", {})
    imp_section = raw.get("import", {})

    log_level = str(main_section.get("log_level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        msg = f"{config_path}: log_level must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}"
        raise ValueError(msg)

    on_existing = str(imp_section.get("on_existing", "truncate"))
    if on_existing not in ON_EXISTING:
        msg = f"{config_path}: on_existing must be one of {', '.join(ON_EXISTING)}, got {on_existing!r}"
        raise ValueError(msg)

    return Cnt2dbConfig(
        root=config_path.parent if config_path else start,
        path=config_path,
        prompt=str(main_section.get("prompt", DEFAULT_PROMPT)),
        log_level=log_level,
        imports=ImportConfig(
            on_existing=on_existing,
            summary=bool(imp_section.get("summary", False)),
        ),
    )


def _find_config(start: Path) -> Path | None:
    """Walk upward from start looking for cnt2db.toml."""
    for directory in (start, *start.parents):
        candidate = directory / _CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
