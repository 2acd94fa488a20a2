"""Database commands: store snapshots and inspect the stored rows."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...config import Config
from ...core.library import LibraryBuilder
from ...database import DatabaseService
from ...utils.errors import MediaCatalogError
from ..display import display_db_statistics, display_media_summary

console = Console()
logger = logging.getLogger(__name__)

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database file (defaults to the configured path)",
)


@click.group("db")
def db() -> None:
    """Store catalog snapshots in SQLite."""
    pass


@db.command(name="populate")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=False,
)
@db_option
@click.pass_obj
def db_populate(config: Config, root: Optional[Path], db_path: Optional[Path]) -> None:
    """Build a catalog of ROOT and replace the stored rows with it."""
    builder = LibraryBuilder(config)
    db_service = DatabaseService(db_path or config.database_path, builder=builder)
    try:
        media = db_service.populate(root or config.library_root)
    except (MediaCatalogError, RuntimeError) as e:
        raise click.ClickException(str(e)) from e
    finally:
        db_service.close()

    display_media_summary(media, builder.get_build_statistics())
    if db_service.last_error is not None:
        reason = escape(str(db_service.last_error))
        console.print(f"[red]❌ Snapshot not stored: {reason}[/red]")
        raise click.exceptions.Exit(1)
    console.print("[green]✅ Snapshot stored[/green]")


@db.command(name="stats")
@db_option
@click.pass_obj
def db_stats(config: Config, db_path: Optional[Path]) -> None:
    """Show row counts of the stored snapshot."""
    db_service = DatabaseService(db_path or config.database_path)
    try:
        display_db_statistics(db_service.get_statistics())
    finally:
        db_service.close()
