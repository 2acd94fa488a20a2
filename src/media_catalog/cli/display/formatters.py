"""Display formatters and UI helpers for CLI."""

from typing import Any, Dict

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from ...core.watch import WatchEvent, WatchEventKind
from ...models import Media

console = Console()

_EVENT_STYLES = {
    WatchEventKind.CREATE: "green",
    WatchEventKind.WRITE: "cyan",
    WatchEventKind.CHMOD: "dim",
    WatchEventKind.REMOVE: "red",
    WatchEventKind.RENAME: "yellow",
    WatchEventKind.RESCAN: "magenta",
    WatchEventKind.ERROR: "bold red",
}


def display_media_summary(media: Media, stats: Dict[str, Any]) -> None:
    """Display a summary table of a built snapshot.

    Args:
        media: Built snapshot
        stats: Build statistics from ``LibraryBuilder.get_build_statistics``
    """
    console.print(f"\n[bold green]📚 Library: {escape(media.root)}[/bold green]")

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Tracks", str(len(media.tracks)))
    untagged = stats.get("tracks_without_tags", 0)
    if untagged:
        table.add_row("Tracks without tags", f"[yellow]{untagged}[/yellow]")
    table.add_row("Images", str(len(media.images)))
    table.add_row("Artists", str(len(media.artists)))
    table.add_row(
        "Albums", str(sum(len(artist.albums) for artist in media.artists.values()))
    )
    unlinked = len(media.unlinked_track_ids)
    if unlinked:
        table.add_row("Tracks without artist", f"[yellow]{unlinked}[/yellow]")

    console.print(table)
    console.print()


def display_artist_tree(media: Media) -> None:
    """Display the artist/album/track hierarchy as a tree."""
    tree = Tree(f"[bold]{escape(media.root)}[/bold]")
    for artist in media.artists.values():
        artist_branch = tree.add(f"[cyan]{escape(artist.name)}[/cyan]")
        for album in artist.albums.values():
            images = f" [dim]({len(album.image_ids)} images)[/dim]"
            album_branch = artist_branch.add(
                f"[green]{escape(album.name)}[/green]{images}"
            )
            for track_id in album.track_ids:
                album_branch.add(_track_label(media, track_id))
        for track_id in artist.track_ids:
            artist_branch.add(_track_label(media, track_id))
    console.print(tree)


def _track_label(media: Media, track_id: str) -> str:
    track = media.tracks[track_id]
    number = f"{track.track:02d}. " if track.track is not None else ""
    title = track.title or track.path
    return f"{number}{escape(title)} [dim]{track.duration_formatted}[/dim]"


def display_watch_event(event: WatchEvent) -> None:
    """Print one watch event on a single line."""
    style = _EVENT_STYLES.get(event.kind, "white")
    path = escape(str(event.path)) if event.path is not None else ""
    line = f"[{style}]{event.kind.value:<13}[/{style}] {path}"
    if event.destination is not None:
        line += f" → {escape(str(event.destination))}"
    if event.cause:
        line += f" [red]({escape(event.cause)})[/red]"
    console.print(line)


def display_db_statistics(stats: Dict[str, Any]) -> None:
    """Display stored row counts."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green", justify="right")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)
