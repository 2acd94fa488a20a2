"""Tests for the change event debouncer."""

from pathlib import Path

import pytest

from media_catalog.core.watch import Debouncer, WatchEvent, WatchEventKind

K = WatchEventKind


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def debouncer(clock: FakeClock):
    """Create a debouncer with a two second window."""
    return Debouncer(window=2.0, clock=clock)


PATH = Path("/music/a.mp3")


class TestWindow:
    """Test debounce window handling."""

    def test_burst_collapses_to_one_event(self, debouncer, clock):
        """Test repeated writes inside the window yield a single event."""
        debouncer.add(K.WRITE, PATH)
        clock.advance(0.5)
        debouncer.add(K.WRITE, PATH)
        clock.advance(0.5)
        debouncer.add(K.WRITE, PATH)

        clock.advance(1.5)
        assert debouncer.flush() == []

        clock.advance(0.5)
        assert debouncer.flush() == [WatchEvent(K.WRITE, PATH)]
        assert debouncer.pending_count == 0

    def test_each_notification_restarts_window(self, debouncer, clock):
        """Test the window is measured from the latest notification."""
        debouncer.add(K.WRITE, PATH)
        clock.advance(1.5)
        debouncer.add(K.WRITE, PATH)
        clock.advance(1.5)
        assert debouncer.flush() == []
        clock.advance(0.5)
        assert len(debouncer.flush()) == 1

    def test_paths_are_independent(self, debouncer, clock):
        """Test different paths are released in deadline order."""
        other = Path("/music/b.mp3")
        debouncer.add(K.WRITE, other)
        clock.advance(0.5)
        debouncer.add(K.CREATE, PATH)
        clock.advance(2.0)

        assert debouncer.flush() == [
            WatchEvent(K.WRITE, other),
            WatchEvent(K.CREATE, PATH),
        ]

    def test_clear_drops_pending(self, debouncer, clock):
        """Test clear discards everything pending."""
        debouncer.add(K.WRITE, PATH)
        assert debouncer.clear() == 1
        clock.advance(5)
        assert debouncer.flush() == []


class TestMerge:
    """Test merging of notifications for the same path."""

    @pytest.mark.parametrize(
        "first,second,expected",
        [
            (K.CREATE, K.WRITE, K.CREATE),
            (K.CREATE, K.CHMOD, K.CREATE),
            (K.WRITE, K.CHMOD, K.WRITE),
            (K.WRITE, K.REMOVE, K.REMOVE),
            (K.REMOVE, K.CREATE, K.WRITE),
            (K.CHMOD, K.WRITE, K.WRITE),
            (K.RESCAN, K.WRITE, K.RESCAN),
        ],
    )
    def test_pairs(self, debouncer, clock, first, second, expected):
        """Test merged kinds for pairs of notifications."""
        debouncer.add(first, PATH)
        debouncer.add(second, PATH)
        clock.advance(2.0)
        assert debouncer.flush() == [WatchEvent(expected, PATH)]

    def test_create_then_remove_cancels(self, debouncer, clock):
        """Test a file created and removed inside the window is not reported."""
        debouncer.add(K.CREATE, PATH)
        debouncer.add(K.REMOVE, PATH)
        clock.advance(2.0)
        assert debouncer.flush() == []

    def test_rename_keeps_destination(self, debouncer, clock):
        """Test renames carry their destination."""
        destination = Path("/music/b.mp3")
        debouncer.add(K.RENAME, PATH, destination)
        clock.advance(2.0)
        event = debouncer.flush()[0]
        assert event.kind is K.RENAME
        assert event.destination == destination
        assert event.to_dict() == {
            "kind": "rename",
            "path": str(PATH),
            "destination": str(destination),
        }


class TestImmediateEvents:
    """Test events that bypass the window."""

    def test_errors_are_immediate(self, debouncer):
        """Test errors are returned at once and never queued."""
        events = debouncer.add(K.ERROR, PATH, cause="gone")
        assert events == [WatchEvent(K.ERROR, PATH, cause="gone")]
        assert debouncer.pending_count == 0
        assert events[0].to_dict() == {
            "kind": "error",
            "path": str(PATH),
            "cause": "gone",
        }

    def test_notices_off_by_default(self, debouncer):
        """Test no notices are produced unless enabled."""
        assert debouncer.add(K.WRITE, PATH) == []
        assert debouncer.add(K.REMOVE, PATH) == []

    def test_notice_write_once_per_burst(self, clock):
        """Test a write notice is emitted when a path starts changing."""
        debouncer = Debouncer(window=2.0, notices=True, clock=clock)
        assert debouncer.add(K.WRITE, PATH) == [WatchEvent(K.NOTICE_WRITE, PATH)]
        assert debouncer.add(K.WRITE, PATH) == []

        clock.advance(2.0)
        assert debouncer.flush() == [WatchEvent(K.WRITE, PATH)]

    def test_notice_remove(self, clock):
        """Test a remove notice is emitted ahead of the remove event."""
        debouncer = Debouncer(window=2.0, notices=True, clock=clock)
        assert debouncer.add(K.REMOVE, PATH) == [WatchEvent(K.NOTICE_REMOVE, PATH)]
        clock.advance(2.0)
        assert debouncer.flush() == [WatchEvent(K.REMOVE, PATH)]
