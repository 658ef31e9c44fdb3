"""Tests for live change notification."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

from watchdog.events import DirModifiedEvent, FileModifiedEvent

from hrevu import file_watcher
from hrevu.file_watcher import (
    ChangeTracker,
    FileWatcher,
    ReviewFileSystemEventHandler,
    is_relevant_path,
)


def test_relevant_paths() -> None:
    """Only the index matters inside .git."""
    assert is_relevant_path(Path("/repo/src/app.py"))
    assert is_relevant_path(Path("/repo/.git/index"))
    assert not is_relevant_path(Path("/repo/.git/objects/ab/cdef"))
    assert not is_relevant_path(Path("/repo/.git/HEAD"))


async def test_wait_returns_immediately_when_behind() -> None:
    """A stale or missing version returns at once."""
    tracker = ChangeTracker()
    tracker.mark_changed()

    assert await tracker.wait_for_change(0, timeout=5) == 1
    assert await tracker.wait_for_change(None, timeout=5) == 1


async def test_wait_times_out_without_change() -> None:
    """Test the wait times out."""
    tracker = ChangeTracker()

    assert await tracker.wait_for_change(0, timeout=0.01) == 0


async def test_change_wakes_waiters() -> None:
    """A change releases every waiter."""
    tracker = ChangeTracker()
    waiters = [asyncio.create_task(tracker.wait_for_change(0, timeout=5)) for _ in range(2)]
    await asyncio.sleep(0)

    tracker.mark_changed()

    assert await asyncio.wait_for(asyncio.gather(*waiters), timeout=1) == [1, 1]


async def test_handler_debounces_events(tmp_path: Path) -> None:
    """Repeated events for one file count once; directories and git internals are ignored."""
    tracker = ChangeTracker()
    handler = ReviewFileSystemEventHandler(tracker, asyncio.get_running_loop())
    target = str(tmp_path / "app.py")

    handler.on_any_event(FileModifiedEvent(target))
    handler.on_any_event(FileModifiedEvent(target))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.py")))
    handler.on_any_event(DirModifiedEvent(str(tmp_path)))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / ".git" / "objects" / "x")))
    await asyncio.sleep(0.01)

    assert tracker.version == 2


async def test_watcher_start_and_stop(tmp_path: Path) -> None:
    """Test starting and stopping the watcher."""
    watcher = FileWatcher(ChangeTracker(), asyncio.get_running_loop())

    watcher.start_watching(tmp_path)
    assert watcher.is_watching

    watcher.stop()
    assert not watcher.is_watching
    assert watcher.observer is None


def test_debounce_forgets_old_paths(monkeypatch) -> None:
    """Paths seen longer ago than the debounce window are dropped from the history."""
    now = [100.0]
    monkeypatch.setattr(file_watcher, "time", SimpleNamespace(monotonic=lambda: now[0]))
    handler = ReviewFileSystemEventHandler(ChangeTracker(), asyncio.new_event_loop())

    try:
        assert handler._should_emit_event("/repo/a.py")
        assert handler._should_emit_event("/repo/b.py")
        assert not handler._should_emit_event("/repo/a.py")

        now[0] += 1.0
        assert handler._should_emit_event("/repo/c.py")
        assert set(handler._last_event_times) == {"/repo/c.py"}
    finally:
        handler.loop.close()
