"""Watch module.

Turns raw filesystem notifications into debounced, classified events.
"""

from .debouncer import Debouncer, WatchEvent, WatchEventKind
from .watcher import LibraryEventHandler, Watcher, WatchSession

__all__ = [
    "Debouncer",
    "WatchEvent",
    "WatchEventKind",
    "LibraryEventHandler",
    "Watcher",
    "WatchSession",
]
