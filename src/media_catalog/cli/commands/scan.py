"""Scan command: build a snapshot and print it."""

import logging
from pathlib import Path
from typing import Optional

import click

from ...config import Config
from ...core.library import LibraryBuilder
from ...utils.errors import MediaCatalogError
from ..display import display_artist_tree, display_media_summary

logger = logging.getLogger(__name__)


@click.command("scan")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=False,
)
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
@click.option("--tree", is_flag=True, help="Print the artist/album/track tree")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Number of threads used to read tags",
)
@click.pass_obj
def scan_command(
    config: Config,
    root: Optional[Path],
    as_json: bool,
    tree: bool,
    workers: Optional[int],
) -> None:
    """Build a catalog of ROOT (defaults to the configured library root)."""
    if workers is not None:
        config.extract_workers = workers

    builder = LibraryBuilder(config)
    try:
        media = builder.build(root or config.library_root)
    except (MediaCatalogError, RuntimeError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(media.to_json(indent=2))
        return

    display_media_summary(media, builder.get_build_statistics())
    if tree:
        display_artist_tree(media)
