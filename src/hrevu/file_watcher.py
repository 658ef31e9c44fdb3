import asyncio
import logging
import time
from pathlib import Path
from typing import Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Version counter the browser long-polls to learn that files changed."""

    def __init__(self) -> None:
        self.version = 0
        self._changed = asyncio.Event()

    def mark_changed(self) -> int:
        """Bump the version and wake everyone waiting. Must run on the event loop."""
        self.version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        return self.version

    async def wait_for_change(self, since: Optional[int], timeout: float) -> int:
        """Return the current version once it differs from `since`, or after `timeout`."""
        if since is None or since != self.version:
            return self.version

        changed = self._changed
        try:
            await asyncio.wait_for(changed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        return self.version


def is_relevant_path(path: Path) -> bool:
    """Whether a change to `path` can alter the review view.

    Git's internals churn constantly; only the index matters, since staging
    moves lines between the staged and unstaged diffs.
    """
    parts = path.parts
    if ".git" not in parts:
        return True
    git_index = parts.index(".git")
    return parts[git_index + 1:] == ("index",)


class ReviewFileSystemEventHandler(FileSystemEventHandler):
    """File system event handler feeding a ChangeTracker."""

    def __init__(self, tracker: ChangeTracker, loop: asyncio.AbstractEventLoop):
        """Initialize the handler.

        Args:
            tracker: Change tracker to bump on relevant changes
            loop: Event loop the tracker lives on
        """
        self.tracker = tracker
        self.loop = loop
        self._last_event_times: Dict[str, float] = {}
        self._debounce_time = 0.5  # Debounce events within 500ms

    def _should_emit_event(self, file_path: str) -> bool:
        """Check if we should emit an event for this file change."""
        current_time = time.monotonic()
        last_time = self._last_event_times.get(file_path)

        if last_time is not None and current_time - last_time < self._debounce_time:
            return False

        # Entries past the debounce window can no longer suppress anything.
        self._last_event_times = {
            path: seen
            for path, seen in self._last_event_times.items()
            if current_time - seen < self._debounce_time
        }
        self._last_event_times[file_path] = current_time
        return True

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle created, modified, moved and deleted files."""
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return

        path = Path(str(event.src_path))
        if not is_relevant_path(path):
            return

        file_path = str(path.resolve())
        if self._should_emit_event(file_path):
            logger.debug("File changed: %s (%s)", file_path, event.event_type)
            self.loop.call_soon_threadsafe(self.tracker.mark_changed)


class FileWatcher:
    """Watches a directory tree and reports changes to a ChangeTracker."""

    def __init__(self, tracker: ChangeTracker, loop: asyncio.AbstractEventLoop):
        """Initialize the file watcher.

        Args:
            tracker: Change tracker to notify
            loop: Event loop to use for scheduling notifications
        """
        self.tracker = tracker
        self.loop = loop
        self.observer: Optional[BaseObserver] = None
        self._is_watching = False

    @property
    def is_watching(self) -> bool:
        return self._is_watching

    def start_watching(self, directory: str | Path) -> None:
        """Start watching a directory for changes.

        Args:
            directory: Directory path to watch recursively
        """
        if self._is_watching:
            return

        handler = ReviewFileSystemEventHandler(self.tracker, self.loop)
        observer = Observer()
        try:
            observer.schedule(handler, str(directory), recursive=True)
            observer.start()
        except OSError as e:
            logger.warning("Could not watch directory %s: %s", directory, e)
            return

        self.observer = observer
        self._is_watching = True

    def stop(self) -> None:
        """Stop the file watcher."""
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        self._is_watching = False
