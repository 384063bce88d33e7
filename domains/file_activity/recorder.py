"""
Creation event loop.

Consumes the watcher's event and error streams one item at a time, turning
"created" events on regular files into FileCreationRecords for the sink.
Nothing here is fatal: failures are logged and the loop moves on.
"""

import os
import stat
import threading
from typing import Optional

from loguru import logger
from watchdog.events import EVENT_TYPE_CREATED, FileSystemEvent

from app.models.schemas import FileCreationRecord
from app.utils.errors import SinkError, WatchError
from domains.file_activity.watchers.tree import watch_tree


class CreationRecorder:
    """Single consumer between the notification facility and the metadata sink."""

    def __init__(self, watcher, sink, follow_new_directories: bool = False, poll_interval: float = 1.0):
        """
        Initialize recorder.

        Args:
            watcher: DirectoryWatcher (or anything with the same stream methods)
            sink: Object with ``insert_record(record)``
            follow_new_directories: Register watches on directories created
                after the initial walk
            poll_interval: Seconds to wait for an event before checking the
                error stream and watch health
        """
        self.watcher = watcher
        self.sink = sink
        self.follow_new_directories = follow_new_directories
        self.poll_interval = poll_interval

        self.recorded = 0
        self.failed = 0

    def handle_event(self, event: FileSystemEvent) -> Optional[FileCreationRecord]:
        """
        Process one file system event.

        Returns:
            The record submitted to the sink, or None if the event was skipped
            or the submission failed
        """
        if event.event_type != EVENT_TYPE_CREATED:
            return None

        path = os.fsdecode(event.src_path)

        # The file may already be gone again
        try:
            st = os.stat(path)
        except OSError as e:
            logger.warning(f"Error getting file info: {e}")
            return None

        if stat.S_ISDIR(st.st_mode):
            if self.follow_new_directories:
                watch_tree(self.watcher, path)
            return None

        try:
            record = FileCreationRecord.from_stat(path, st)
            line = record.to_log_line()
        except ValueError as e:
            logger.error(f"Error serializing record for {path}: {e}")
            self.failed += 1
            return None

        logger.info(line)

        try:
            self.sink.insert_record(record)
        except SinkError as e:
            logger.error(f"Error inserting document into MongoDB: {e}")
            self.failed += 1
            return None

        self.recorded += 1
        return record

    def handle_error(self, error: WatchError) -> None:
        """Errors from the notification facility are only logged."""
        logger.error(f"ERROR {error}")

    def run(self, stop_event: threading.Event) -> None:
        """Consume events until ``stop_event`` is set."""
        logger.info("Creation event loop started")

        while not stop_event.is_set():
            for error in self.watcher.drain_errors():
                self.handle_error(error)

            event = self.watcher.next_event(timeout=self.poll_interval)
            if event is None:
                self.watcher.check_health()
                continue

            self.handle_event(event)

        logger.info(f"Creation event loop stopped ({self.recorded} recorded, {self.failed} failed)")
