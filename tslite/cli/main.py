"""TSLite CLI — command-line interface for database files.

Commands:
    tslite create <file>              Create an empty database
    tslite info <file>                Show database summary
    tslite append <file> <value>      Append a value
    tslite update <file> <i> <value>  Change the value of a record
    tslite show <file>                List records
    tslite check <file>               Run the integrity scan
    tslite repair <file>              Run the integrity scan and reorder records
    tslite export <file>              Export to CSV
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tslite.errors import OffsetError, TSLiteError
from tslite.storage.physical import PhysicalDB
from tslite.utils.schema import RecordInfo, Timestamp

console = Console()

FILE_ENVVAR = "TSLITE_FILE"
DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


def setup_logging(verbose: bool, debug: bool) -> None:
    """Configure logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _existing_file() -> click.Path:
    return click.Path(exists=True, dir_okay=False, path_type=Path)


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise SystemExit(1)


def _time_of(origin: Timestamp, record: RecordInfo) -> str:
    try:
        return str(origin.add_seconds(record.time_offset))
    except OffsetError:
        return "?"


@click.group()
@click.version_option(version="0.1.0", prog_name="tslite")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log lifecycle events")
@click.option("--debug", is_flag=True, default=False, help="Log every record operation")
def cli(verbose: bool, debug: bool) -> None:
    """TSLite — a tiny single-file time-series database.

    Each record is a one-octet value stored with its time offset from the
    origin date of the file.
    """
    setup_logging(verbose, debug)


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path), envvar=FILE_ENVVAR)
@click.option("--origin", type=click.DateTime(DATETIME_FORMATS), default=None,
              help="Origin date in UTC (default: now)")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file")
def create(file: Path, origin: datetime | None, force: bool) -> None:
    """Create an empty database."""
    if file.exists() and not force:
        _fail(f"{file} already exists. Use --force to overwrite it.")

    try:
        db = PhysicalDB.create(file, origin)
    except TSLiteError as e:
        _fail(f"Error creating {file}: {e}")
        return

    console.print(f"[green]Created {file}[/green] (origin {db.origin_date})")


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
def info(file: Path) -> None:
    """Show database summary."""
    try:
        with PhysicalDB.open_or_create(file) as db:
            header = db.read_header()
            present = db.physical_record_count()
            first = last = None
            if header.records_number and present:
                first = db.read_record(0)
                last = db.read_record(min(header.records_number, present) - 1)
    except TSLiteError as e:
        _fail(f"Error opening {file}: {e}")
        return

    console.print()
    console.print(Panel.fit(f"[bold]{file.name}[/bold]", subtitle=f"{file}"))

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value")

    valid = header.origin_date.is_valid()
    table.add_row("Origin", str(header.origin_date) + ("" if valid else " [red](invalid)[/red]"))
    table.add_row("Records", str(header.records_number))
    table.add_row("Record slots", str(present))
    if first is not None and last is not None:
        table.add_row("First", _time_of(header.origin_date, first))
        table.add_row("Last", _time_of(header.origin_date, last))

    console.print(table)
    console.print()


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
@click.argument("value", type=click.IntRange(0, 255))
@click.option("--at", type=click.DateTime(DATETIME_FORMATS), default=None,
              help="Time of the value in UTC (default: now)")
@click.option("--strict", is_flag=True, default=False,
              help="Refuse values older than the last record")
def append(file: Path, value: int, at: datetime | None, strict: bool) -> None:
    """Append a value."""
    try:
        with PhysicalDB.open_or_create(file) as db:
            if at is None:
                record = db.append_record_now(value, strict=strict)
            else:
                offset = db.origin_date.offset(Timestamp.from_datetime(at))
                record = RecordInfo(time_offset=offset, value=value)
                db.append_record(record, strict=strict)
            index = db.records_number - 1
    except TSLiteError as e:
        _fail(f"Error appending to {file}: {e}")
        return

    console.print(f"Appended record {index}: offset={record.time_offset} value={record.value}")


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
@click.argument("index", type=click.IntRange(min=0))
@click.argument("value", type=click.IntRange(0, 255))
def update(file: Path, index: int, value: int) -> None:
    """Change the value of a record."""
    try:
        with PhysicalDB.open_or_create(file) as db:
            db.update_record(index, value)
    except TSLiteError as e:
        _fail(f"Error updating {file}: {e}")
        return

    console.print(f"Updated record {index}: value={value}")


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
@click.option("--start", default=0, type=click.IntRange(min=0), help="First record index")
@click.option("--limit", default=20, type=click.IntRange(min=1), help="Number of records")
def show(file: Path, start: int, limit: int) -> None:
    """List records."""
    table = Table(title=f"{file.name}")
    table.add_column("Index", justify="right")
    table.add_column("Offset", justify="right")
    table.add_column("Time")
    table.add_column("Value", justify="right")

    try:
        with PhysicalDB.open_or_create(file) as db:
            origin = db.origin_date
            stop = min(start + limit, db.records_number)
            for index, record in enumerate(db.iter_records(start, stop), start):
                table.add_row(
                    str(index), str(record.time_offset), _time_of(origin, record), str(record.value)
                )
            total = db.records_number
    except TSLiteError as e:
        _fail(f"Error reading {file}: {e}")
        return

    if total > stop:
        table.add_row("...", f"({total - stop} more)", "", "")
    console.print(table)


def _run_diagnosis(file: Path, repair: bool) -> None:
    from tslite.diagnose import diagnose as run_diagnosis

    console.print()
    console.print(f"[dim]Scanning {file}...[/dim]")

    try:
        result = run_diagnosis(file, repair=repair)
    except TSLiteError as e:
        _fail(f"Error scanning {file}: {e}")
        return

    if result.fixed:
        console.print(Panel(
            "\n".join(f"[green]✓[/green] {issue.description}" for issue in result.fixed),
            title="[green]Repaired[/green]",
            border_style="green",
        ))

    if result.healthy:
        console.print(Panel(
            "[green]✓ No issue found. Database looks healthy.[/green]",
            title="Integrity",
            border_style="green",
        ))
        console.print()
        return

    assert result.remaining is not None
    console.print(Panel(
        f"[red]✗[/red] [bold]{result.remaining.kind.value}[/bold]\n"
        f"  {result.remaining.description}",
        title="[red]Integrity[/red]",
        border_style="red",
    ))
    console.print()
    raise SystemExit(1)


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
def check(file: Path) -> None:
    """Run the integrity scan. Exits with status 1 if an issue is found."""
    _run_diagnosis(file, repair=False)


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
def repair(file: Path) -> None:
    """Reorder records if needed. Exits with status 1 if an issue remains."""
    _run_diagnosis(file, repair=True)


@cli.command()
@click.argument("file", type=_existing_file(), envvar=FILE_ENVVAR)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Output CSV file")
def export(file: Path, output: Path | None) -> None:
    """Export records to CSV."""
    from tslite.export.csv import export_csv

    try:
        created = export_csv(file, output=output)
    except TSLiteError as e:
        _fail(f"Error exporting {file}: {e}")
        return

    console.print(f"  Created: {created}")
    console.print("[green]CSV export complete[/green]")


if __name__ == "__main__":
    cli()
