#!/usr/bin/env python3
"""
Command-line maintenance for the record store.

Commands:
- import:  load a CSV or XLSX file into the configured database (same path as the upload endpoint)
- reindex: recompute searchable text for records where it is missing (or all)
- stats:   print record and column counts

The database is taken from DATABASE_URL (env/.env) unless --database-url is given.
"""

from pathlib import Path
from typing import Optional

import typer

from record_search.core.errors import RecordSearchError
from record_search.db import sqlalchemy as dbmod
from record_search.services.ingest import IngestPipeline
from record_search.services.record_store import RecordStore

app = typer.Typer(help="Maintain the record-search database.")


def _store(database_url: Optional[str]) -> RecordStore:
    if database_url:
        dbmod.reconfigure(database_url)
    dbmod.init_db()
    return RecordStore(dbmod.get_sessionmaker())


@app.command("import")
def import_csv(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV or XLSX file to load."),
    clear: bool = typer.Option(False, "--clear", help="Delete every stored record before loading."),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Override DATABASE_URL."),
) -> None:
    """Load a CSV or XLSX file, one record per data row."""
    pipeline = IngestPipeline(_store(database_url))
    try:
        result = pipeline.import_file(path.name, path.read_bytes(), clear_existing=clear, max_bytes=path.stat().st_size)
    except RecordSearchError as exc:
        typer.echo(f"Import failed: {exc.message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(result.message)
    for warning in result.validation.warnings:
        typer.echo(f"warning: {warning}")
    for error in result.errors:
        typer.echo(f"row {error.row_index + 1}: {error.message}", err=True)
    if not result.success:
        raise typer.Exit(code=2)


@app.command()
def reindex(
    all_records: bool = typer.Option(False, "--all", help="Rebuild every record, not only missing ones."),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Override DATABASE_URL."),
) -> None:
    """Recompute searchable text from stored payloads."""
    updated = _store(database_url).rebuild_searchable_text(only_missing=not all_records)
    typer.echo(f"{updated} records reindexed")


@app.command()
def stats(
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Override DATABASE_URL."),
) -> None:
    """Print record and column counts."""
    statistics = _store(database_url).statistics()
    typer.echo(f"records: {statistics.total_records}")
    typer.echo(f"columns ({statistics.total_columns}): {', '.join(statistics.columns)}")


if __name__ == "__main__":
    app()
