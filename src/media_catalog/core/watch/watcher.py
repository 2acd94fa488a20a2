"""Debounced filesystem change notifications for a library root.

A ``Watcher`` owns a queue of classified events and at most one active
``WatchSession``. Starting a new watch tears down the previous session
first. Events only signal that a rescan may be warranted; nothing here
rebuilds the library.
"""

import logging
import os
import queue
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ...config import WATCH_DEBOUNCE_SECONDS
from ...utils.errors import WatchError
from .debouncer import Debouncer, WatchEvent, WatchEventKind

logger = logging.getLogger(__name__)

EventSink = Callable[[WatchEvent], None]


class LibraryEventHandler(FileSystemEventHandler):
    """Classifies watchdog events and feeds them to a debouncer."""

    def __init__(self, root: Path, debouncer: Debouncer, emit: EventSink) -> None:
        """Initialize event handler.

        Args:
            root: Watched root directory
            debouncer: Debouncer receiving classified notifications
            emit: Receives events that bypass the debounce window
        """
        super().__init__()
        self.root = root
        self.debouncer = debouncer
        self.emit = emit
        self._mtimes: Dict[Path, int] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Classify one raw watchdog event."""
        src = Path(os.fsdecode(event.src_path))
        dest_raw = getattr(event, "dest_path", "")
        dest = Path(os.fsdecode(dest_raw)) if dest_raw else None

        if event.is_directory:
            self._on_directory_event(event.event_type, src, dest)
            return

        if event.event_type == EVENT_TYPE_CREATED:
            self._remember_mtime(src)
            self._add(WatchEventKind.CREATE, src)
        elif event.event_type == EVENT_TYPE_MODIFIED:
            self._add(self._classify_modified(src), src)
        elif event.event_type == EVENT_TYPE_DELETED:
            self._mtimes.pop(src, None)
            self._add(WatchEventKind.REMOVE, src)
        elif event.event_type == EVENT_TYPE_MOVED:
            self._mtimes.pop(src, None)
            self._add(WatchEventKind.RENAME, src, dest)
        # opened/closed events carry no change

    def _on_directory_event(
        self, event_type: str, src: Path, dest: Optional[Path]
    ) -> None:
        if src == self.root and event_type in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED):
            self._add(WatchEventKind.ERROR, src, cause="watched root was removed")
            return
        # directory mtimes change with every entry; only structure matters
        if event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED):
            self._add(WatchEventKind.RESCAN, src)

    def _classify_modified(self, path: Path) -> WatchEventKind:
        """Tell content writes from metadata-only changes."""
        try:
            mtime = path.stat().st_mtime_ns
        except OSError:
            return WatchEventKind.WRITE

        previous = self._mtimes.get(path)
        self._mtimes[path] = mtime
        if previous is not None and previous == mtime:
            return WatchEventKind.CHMOD
        return WatchEventKind.WRITE

    def _remember_mtime(self, path: Path) -> None:
        try:
            self._mtimes[path] = path.stat().st_mtime_ns
        except OSError:
            self._mtimes.pop(path, None)

    def _add(
        self,
        kind: WatchEventKind,
        path: Path,
        destination: Optional[Path] = None,
        cause: Optional[str] = None,
    ) -> None:
        for event in self.debouncer.add(kind, path, destination, cause):
            self.emit(event)


class WatchSession:
    """One recursive subscription on a root directory."""

    def __init__(
        self,
        root: Path,
        emit: EventSink,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        notices: bool = False,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        """Initialize a watch session; call ``start`` to begin watching."""
        self.root = root
        self.emit = emit
        self.debouncer = Debouncer(window=debounce_seconds, notices=notices)
        self.handler = LibraryEventHandler(root, self.debouncer, emit)
        self._observer_factory = observer_factory
        self._observer: Optional[Any] = None
        self._stop = threading.Event()
        self._flusher: Optional[threading.Thread] = None
        self._tick = min(0.25, max(debounce_seconds / 4, 0.01))

    def start(self) -> None:
        """Start the observer and the flush thread.

        Raises:
            WatchError: If the root is not a directory or the OS refuses the
                subscription (e.g. watch limits)
        """
        if not self.root.is_dir():
            raise WatchError(f"Cannot watch {self.root}: not a directory")

        observer = self._observer_factory()
        observer.daemon = True
        try:
            observer.schedule(self.handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(f"Cannot watch {self.root}: {e}") from e

        self._observer = observer
        self._flusher = threading.Thread(
            target=self._flush_loop, name="media-catalog-watch-flush", daemon=True
        )
        self._flusher.start()
        logger.info("Watching %s for changes", self.root)

    def stop(self) -> None:
        """Stop watching; pending debounced events are dropped."""
        self._stop.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        if self._flusher is not None:
            self._flusher.join(timeout=5)
            self._flusher = None

        dropped = self.debouncer.clear()
        if dropped:
            logger.debug("Dropped %d pending events for %s", dropped, self.root)
        logger.info("Stopped watching %s", self.root)

    def _flush_loop(self) -> None:
        while not self._stop.wait(self._tick):
            for event in self.debouncer.flush():
                self.emit(event)


class Watcher:
    """Manages a single watch subscription and its event queue."""

    def __init__(
        self,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        notices: bool = False,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        """Initialize watcher.

        Args:
            debounce_seconds: Debounce window per path
            notices: Also emit notice_write/notice_remove events
            observer_factory: Creates watchdog observers
        """
        self.debounce_seconds = debounce_seconds
        self.notices = notices
        self._observer_factory = observer_factory
        self._events: "queue.Queue[WatchEvent]" = queue.Queue()
        self._session: Optional[WatchSession] = None
        self._lock = threading.Lock()

    @property
    def root(self) -> Optional[Path]:
        """Root of the active subscription, if any."""
        session = self._session
        return session.root if session else None

    @property
    def is_watching(self) -> bool:
        """Whether a subscription is active."""
        return self._session is not None

    def start_watch(self, root: Union[str, Path]) -> None:
        """Watch ``root`` recursively, replacing any active subscription.

        The previous subscription is stopped before the new one starts, so
        the two never overlap.

        Args:
            root: Directory to watch

        Raises:
            WatchError: If the new subscription cannot be started
        """
        with self._lock:
            if self._session is not None:
                self._session.stop()
                self._session = None

            session = WatchSession(
                Path(root),
                self._events.put,
                debounce_seconds=self.debounce_seconds,
                notices=self.notices,
                observer_factory=self._observer_factory,
            )
            session.start()
            self._session = session

    def stop(self) -> None:
        """Stop the active subscription, if any."""
        with self._lock:
            if self._session is not None:
                self._session.stop()
                self._session = None

    def get_event(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        """Get the next event.

        Args:
            timeout: Seconds to wait; None waits forever

        Returns:
            Next event, or None if the timeout expired
        """
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def events(self, timeout: Optional[float] = None) -> Iterator[WatchEvent]:
        """Iterate over events until ``timeout`` passes without one."""
        while True:
            event = self.get_event(timeout)
            if event is None:
                return
            yield event
