"""
Per-directory file system notifications.

Wraps a watchdog Observer so each directory gets its own non-recursive watch.
Events and facility errors are exposed as two queues consumed by a single
event loop.
"""

import os
import queue
from typing import List, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from app.utils.errors import WatchError


class QueueingEventHandler(FileSystemEventHandler):
    """Forwards every watchdog event to a queue."""

    def __init__(self, events: queue.Queue):
        super().__init__()
        self.events = events

    def dispatch(self, event: FileSystemEvent) -> None:
        self.events.put(event)


class DirectoryWatcher:
    """Handle on the notification facility.

    Watches only cover the immediate contents of a directory, so a tree needs
    one ``add`` per directory.
    """

    def __init__(self, observer: Optional[Observer] = None):
        """
        Initialize and start the observer.

        Args:
            observer: Observer instance to use (a default Observer otherwise)
        """
        self.events: "queue.Queue[FileSystemEvent]" = queue.Queue()
        self.errors: "queue.Queue[WatchError]" = queue.Queue()

        self._handler = QueueingEventHandler(self.events)
        self._watches: dict[str, ObservedWatch] = {}
        self._reported: set[str] = set()

        # Scheduling on a live observer starts the emitter immediately, so
        # bad paths fail inside add() instead of at start()
        self._observer = observer or Observer()
        self._observer.daemon = True
        self._observer.start()

    @property
    def watched_paths(self) -> List[str]:
        return list(self._watches)

    def add(self, path: str) -> ObservedWatch:
        """
        Watch the immediate contents of ``path``.

        Raises:
            OSError: If the path cannot be watched
        """
        path = os.fsdecode(path)

        # A directory deleted and created again keeps its old, stopped watch
        stale = self._watches.get(path)
        if stale is not None and not self.is_watching(path):
            self._observer.unschedule(stale)
            del self._watches[path]
            self._reported.discard(path)
            logger.debug(f"Replacing stopped watch: {path}")

        watch = self._observer.schedule(self._handler, path, recursive=False)
        self._watches[path] = watch
        logger.debug(f"Watching: {path}")
        return watch

    def is_watching(self, path: str) -> bool:
        """True if ``path`` has a watch whose emitter is still running."""
        watch = self._watches.get(os.fsdecode(path))
        if watch is None:
            return False
        return any(
            emitter.watch == watch and emitter.is_alive()
            for emitter in list(self._observer.emitters)
        )

    def next_event(self, timeout: Optional[float] = None) -> Optional[FileSystemEvent]:
        """Next event from the event stream, or None after ``timeout`` seconds."""
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None

    def report_error(self, error: WatchError) -> None:
        self.errors.put(error)

    def drain_errors(self) -> List[WatchError]:
        """Everything currently on the error stream."""
        drained = []
        while True:
            try:
                drained.append(self.errors.get_nowait())
            except queue.Empty:
                return drained

    def check_health(self) -> int:
        """
        Report watches whose emitter thread has stopped.

        Each dead watch is reported once on the error stream.

        Returns:
            Number of newly reported watches
        """
        reported = 0
        for emitter in list(self._observer.emitters):
            path = os.fsdecode(emitter.watch.path)
            if emitter.is_alive() or path in self._reported:
                continue
            self._reported.add(path)
            self.report_error(WatchError(f"Watch stopped for {path}", path=path))
            reported += 1
        return reported

    def close(self):
        """Stop the observer and its emitters."""
        self._observer.stop()
        self._observer.join()
        logger.info("File system observer stopped")

    def __enter__(self) -> "DirectoryWatcher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
