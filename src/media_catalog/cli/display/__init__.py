"""CLI display and formatting utilities."""

from .formatters import (
    display_artist_tree,
    display_db_statistics,
    display_media_summary,
    display_watch_event,
)

__all__ = [
    "display_artist_tree",
    "display_db_statistics",
    "display_media_summary",
    "display_watch_event",
]
