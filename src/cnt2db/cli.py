"""cnt2db CLI — load block count files into a database and query them.

Modes (exactly one per invocation):
    cnt2db -cf COUNTFILE -wdb DATABASE   parse COUNTFILE into a new DATABASE
    cnt2db -i DATABASE                   interactive block lookups
    cnt2db                               print usage
"""

from __future__ import annotations

import logging

import click

from cnt2db.config import Cnt2dbConfig, load_config
from cnt2db.errors import Cnt2dbError, UsageError
from cnt2db.importer import import_file
from cnt2db.models import ImportReport
from cnt2db.query import run_query

USAGE = "Usage: cnt2db -i <database> or cnt2db -cf <countFile> -wdb <new database>"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def check_modes(interactive_db: str | None, count_file: str | None, write_db: str | None) -> str:
    """Validate the mode flags. Returns "interactive", "import" or "usage".

    Raises UsageError for contradictory or incomplete combinations.
    """
    if interactive_db and (write_db or count_file):
        raise UsageError("-wdb and -cf may not be specified in interactive mode")
    if bool(count_file) != bool(write_db):
        raise UsageError("-wdb and -cf must be specified together")
    if interactive_db:
        return "interactive"
    if count_file:
        return "import"
    return "usage"


def _load_cfg() -> Cnt2dbConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _setup_logging(cfg: Cnt2dbConfig, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else cfg.log_level_value,
        format="%(asctime)s %(name)s %(message)s",
    )


def _print_summary(report: ImportReport) -> None:
    """Render a table of imported blocks."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title="Imported blocks", show_header=True, header_style="bold")
    table.add_column("Block", no_wrap=True)
    table.add_column("Entries", justify="right")
    for block in sorted(report.blocks):
        table.add_row(block, str(report.entries[block]))
    table.add_section()
    table.add_row("[dim]lines read[/dim]", str(report.lines))
    if report.overwritten:
        table.add_row("[dim]overwritten[/dim]", str(report.overwritten))
    if report.unrecognized:
        table.add_row("[dim]unrecognized lines[/dim]", str(len(report.unrecognized)))
    Console().print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="cnt2db")
@click.option("-i", "interactive_db", default=None, metavar="DATABASE", help="Database for interactive queries")
@click.option(
    "-wdb", "write_db", default=None, metavar="DATABASE",
    help="New database which will be populated with count file data",
)
@click.option("-cf", "count_file", default=None, metavar="COUNTFILE", help="Count file to parse and store in a new database")
@click.option("--summary/--no-summary", default=None, help="Print a table of imported blocks (default from cnt2db.toml)")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
def cli(
    interactive_db: str | None,
    write_db: str | None,
    count_file: str | None,
    summary: bool | None,
    verbose: bool,
) -> None:
    """Store block device counts in a database and look them up by block."""
    try:
        mode = check_modes(interactive_db, count_file, write_db)
    except UsageError as exc:
        raise click.UsageError(exc.message) from exc

    if mode == "usage":
        click.echo(USAGE)
        return

    cfg = _load_cfg()
    _setup_logging(cfg, verbose)

    if mode == "interactive":
        try:
            run_query(interactive_db, prompt=cfg.prompt)
        except Cnt2dbError as exc:
            msg = f"Error from interactive query session for database {interactive_db}: {exc}"
            raise click.ClickException(msg) from exc
        return

    try:
        report = import_file(count_file, write_db, on_existing=cfg.imports.on_existing)
    except Cnt2dbError as exc:
        msg = f"Error creating database file {write_db} from count file {count_file}: {exc}"
        raise click.ClickException(msg) from exc

    click.echo(f"Imported {report.total_entries} entries in {len(report.blocks)} blocks into {write_db}")
    show_summary = cfg.imports.summary if summary is None else summary
    if show_summary:
        _print_summary(report)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
