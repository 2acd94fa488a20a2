"""Command-line interface for the media catalog.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import get_config
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import db, scan_command, watch_command


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Media catalog builder.

    Scans a music folder and organizes its tracks by artist and album.
    """
    config = get_config()
    setup_logging(
        log_level=log_level or config.log_level,
        log_file=Path(log_file) if log_file else None,
    )
    configure_third_party_loggers()
    ctx.obj = config


cli.add_command(scan_command)
cli.add_command(db)
cli.add_command(watch_command)


if __name__ == "__main__":
    cli()
