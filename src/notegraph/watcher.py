"""File watcher that invalidates cached graph stats when notes change."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .cache import GraphCache

logger = logging.getLogger(__name__)

InvalidatedCallback = Callable[[str, list[str]], None]


class DebouncedInvalidationHandler(FileSystemEventHandler):
    """Coalesces bursts of events per file into one cache invalidation."""

    def __init__(
        self,
        cache: GraphCache,
        debounce_seconds: float = 0.3,
        on_invalidated: InvalidatedCallback | None = None,
    ):
        """Initialize the debounced handler.

        Args:
            cache: Cache whose entries are evicted for changed files.
            debounce_seconds: Quiet period per file before invalidating.
            on_invalidated: Called with (file_path, removed_keys) when keys were removed.
        """
        super().__init__()
        self._cache = cache
        self._debounce_seconds = debounce_seconds
        self._on_invalidated = on_invalidated
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _fire(self, file_path: str) -> None:
        with self._lock:
            self._timers.pop(file_path, None)

        invalidated = self._cache.invalidate_by_file(file_path)
        if invalidated:
            logger.debug("Invalidated %s for %s", invalidated, file_path)
            if self._on_invalidated is not None:
                self._on_invalidated(file_path, invalidated)

    def schedule(self, file_path: str) -> None:
        """Restart the debounce window for file_path."""
        with self._lock:
            existing = self._timers.get(file_path)
            if existing is not None:
                existing.cancel()

            timer = threading.Timer(self._debounce_seconds, self._fire, args=(file_path,))
            timer.daemon = True
            self._timers[file_path] = timer
            timer.start()

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

    def _handle_path(self, raw_path: str | bytes) -> None:
        path = os.fsdecode(raw_path)
        # Only markdown files affect the graph
        if Path(path).suffix.lower() != ".md":
            return
        self.schedule(os.path.abspath(path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_path(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_path(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_path(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle_path(event.src_path)
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            self._handle_path(dest_path)


class NoteFileWatcher:
    """Watch a notes directory and invalidate cache entries on change."""

    def __init__(
        self,
        notes_dir: str | os.PathLike[str],
        cache: GraphCache,
        debounce_seconds: float = 0.3,
        on_invalidated: InvalidatedCallback | None = None,
    ):
        """Initialize the file watcher.

        Args:
            notes_dir: Directory to watch recursively.
            cache: Cache to invalidate.
            debounce_seconds: Debounce window per file.
            on_invalidated: Optional callback, see DebouncedInvalidationHandler.
        """
        self._notes_dir = Path(os.path.expanduser(os.fspath(notes_dir))).absolute()
        self._handler = DebouncedInvalidationHandler(
            cache, debounce_seconds=debounce_seconds, on_invalidated=on_invalidated
        )
        self._observer: Observer | None = None
        self._running = False

    def start(self) -> None:
        """Start watching for file changes."""
        if self._running:
            return

        if not self._notes_dir.is_dir():
            logger.warning(f"Notes directory does not exist: {self._notes_dir}")
            return

        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._notes_dir), recursive=True)
        self._observer.start()
        self._running = True
        logger.info(f"Started watching: {self._notes_dir}")

    def stop(self) -> None:
        """Stop watching and drop pending invalidations."""
        if not self._running or self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self._handler.cancel_all()
        self._running = False
        logger.info("Stopped file watcher")

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self) -> "NoteFileWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
