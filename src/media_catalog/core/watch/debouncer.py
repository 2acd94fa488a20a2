"""Per-path coalescing of raw filesystem notifications."""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...config import WATCH_DEBOUNCE_SECONDS


class WatchEventKind(str, Enum):
    """Kinds of classified change events."""

    NOTICE_WRITE = "notice_write"
    NOTICE_REMOVE = "notice_remove"
    CREATE = "create"
    WRITE = "write"
    CHMOD = "chmod"
    REMOVE = "remove"
    RENAME = "rename"
    RESCAN = "rescan"
    ERROR = "error"


@dataclass(frozen=True)
class WatchEvent:
    """A classified change event.

    ``destination`` is only set for renames and ``cause`` only for errors.
    """

    kind: WatchEventKind
    path: Optional[Path] = None
    destination: Optional[Path] = None
    cause: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a ``{kind, path?}`` dictionary."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "path": str(self.path) if self.path is not None else None,
        }
        if self.kind is WatchEventKind.RENAME:
            data["destination"] = (
                str(self.destination) if self.destination is not None else None
            )
        if self.kind is WatchEventKind.ERROR:
            data["cause"] = self.cause
        return data


_K = WatchEventKind

# (pending kind, new kind) -> merged kind; None drops the pending event.
# Pairs not listed resolve to the new kind.
_MERGE: Dict[Tuple[WatchEventKind, WatchEventKind], Optional[WatchEventKind]] = {
    (_K.CREATE, _K.WRITE): _K.CREATE,
    (_K.CREATE, _K.CHMOD): _K.CREATE,
    (_K.CREATE, _K.REMOVE): None,
    (_K.WRITE, _K.CHMOD): _K.WRITE,
    (_K.WRITE, _K.CREATE): _K.WRITE,
    (_K.REMOVE, _K.CREATE): _K.WRITE,
    (_K.REMOVE, _K.CHMOD): _K.WRITE,
    (_K.RESCAN, _K.CREATE): _K.RESCAN,
    (_K.RESCAN, _K.WRITE): _K.RESCAN,
    (_K.RESCAN, _K.CHMOD): _K.RESCAN,
    (_K.RESCAN, _K.REMOVE): _K.RESCAN,
}


@dataclass
class _Pending:
    kind: WatchEventKind
    deadline: float
    destination: Optional[Path] = None


class Debouncer:
    """Coalesces notifications for the same path inside a fixed window.

    Every notification restarts the window of its path. When a window
    elapses without further notifications, one merged event is released by
    ``flush``. Safe to feed from one thread and flush from another.
    """

    def __init__(
        self,
        window: float = WATCH_DEBOUNCE_SECONDS,
        notices: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize debouncer.

        Args:
            window: Debounce window in seconds
            notices: Emit notice_write/notice_remove as soon as a path starts
                changing, ahead of the debounced event
            clock: Monotonic time source
        """
        self.window = window
        self.notices = notices
        self._clock = clock
        self._pending: Dict[Path, _Pending] = {}
        self._lock = threading.Lock()

    def add(
        self,
        kind: WatchEventKind,
        path: Path,
        destination: Optional[Path] = None,
        cause: Optional[str] = None,
    ) -> List[WatchEvent]:
        """Record a raw notification.

        Args:
            kind: Classified kind of the notification
            path: Path the notification is about
            destination: New path for renames
            cause: Human readable cause for errors

        Returns:
            Events to forward immediately (errors and notices)
        """
        if kind is WatchEventKind.ERROR:
            return [WatchEvent(kind, path, cause=cause)]

        immediate: List[WatchEvent] = []
        deadline = self._clock() + self.window

        with self._lock:
            pending = self._pending.get(path)

            if self.notices:
                notice = self._notice_for(kind, pending)
                if notice is not None:
                    immediate.append(WatchEvent(notice, path))

            if pending is None:
                self._pending[path] = _Pending(kind, deadline, destination)
                return immediate

            merged = _MERGE.get((pending.kind, kind), kind)
            if merged is None:
                del self._pending[path]
                return immediate

            pending.kind = merged
            pending.deadline = deadline
            if destination is not None:
                pending.destination = destination

        return immediate

    def flush(self) -> List[WatchEvent]:
        """Release events whose window has elapsed.

        Returns:
            Due events ordered by deadline
        """
        now = self._clock()
        with self._lock:
            due = sorted(
                (
                    (entry.deadline, path, entry)
                    for path, entry in self._pending.items()
                    if entry.deadline <= now
                ),
                key=lambda item: (item[0], str(item[1])),
            )
            for _, path, _ in due:
                del self._pending[path]

        return [
            WatchEvent(
                entry.kind,
                path,
                destination=entry.destination
                if entry.kind is WatchEventKind.RENAME
                else None,
            )
            for _, path, entry in due
        ]

    def clear(self) -> int:
        """Drop all pending events and return how many were dropped."""
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
        return count

    @property
    def pending_count(self) -> int:
        """Number of paths with an unreleased event."""
        with self._lock:
            return len(self._pending)

    @staticmethod
    def _notice_for(
        kind: WatchEventKind, pending: Optional[_Pending]
    ) -> Optional[WatchEventKind]:
        pending_kind = pending.kind if pending else None
        if kind is WatchEventKind.WRITE and pending_kind not in (
            WatchEventKind.WRITE,
            WatchEventKind.CREATE,
        ):
            return WatchEventKind.NOTICE_WRITE
        if (
            kind is WatchEventKind.REMOVE
            and pending_kind is not WatchEventKind.REMOVE
        ):
            return WatchEventKind.NOTICE_REMOVE
        return None
