"""Watch command: print debounced change events for a library."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...config import Config
from ...core.watch import Watcher
from ...utils.errors import WatchError
from ..display import display_watch_event

console = Console()
logger = logging.getLogger(__name__)


@click.command("watch")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=False,
)
@click.option(
    "--notices", is_flag=True, help="Also print notices when a file starts changing"
)
@click.pass_obj
def watch_command(config: Config, root: Optional[Path], notices: bool) -> None:
    """Watch ROOT and print change events until interrupted."""
    watcher = Watcher(debounce_seconds=config.watch_debounce_seconds, notices=notices)
    try:
        watcher.start_watch(root or config.library_root)
    except WatchError as e:
        raise click.ClickException(str(e)) from e

    root_label = escape(str(watcher.root))
    console.print(f"[bold blue]👀 Watching {root_label}[/bold blue] (Ctrl+C to stop)")
    try:
        for event in watcher.events():
            display_watch_event(event)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()
