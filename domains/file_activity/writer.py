"""
Bounded writer queue in front of the metadata sink.

Lets the event loop keep consuming while a slow store round-trip is in
flight. What happens when the queue is full depends on the policy:

- ``block``: the event loop waits for room
- ``drop_newest``: the incoming record is discarded
- ``drop_oldest``: the oldest queued record is discarded to make room
"""

import queue
import threading

from loguru import logger

from app.models.schemas import FileCreationRecord
from app.utils.errors import SinkError

POLICIES = ("block", "drop_newest", "drop_oldest")

_STOP = object()


class QueuedSink:
    """Writer thread draining a bounded queue into the real sink."""

    def __init__(self, sink, maxsize: int, policy: str = "block"):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        if policy not in POLICIES:
            raise ValueError(f"Unknown queue policy: {policy}")

        self.sink = sink
        self.policy = policy
        self.dropped = 0
        self.failed = 0

        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread = threading.Thread(target=self._drain, name="sink-writer", daemon=True)

    def start(self) -> "QueuedSink":
        self._thread.start()
        logger.info(f"Sink writer started (queue size {self._queue.maxsize}, policy {self.policy})")
        return self

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def insert_record(self, record: FileCreationRecord) -> None:
        """Queue a record; never raises SinkError."""
        if self.policy == "block":
            self._queue.put(record)
            return

        if self.policy == "drop_newest":
            try:
                self._queue.put_nowait(record)
            except queue.Full:
                self.dropped += 1
                logger.warning(f"Writer queue full, dropped {record.name}")
            return

        while True:
            try:
                self._queue.put_nowait(record)
                return
            except queue.Full:
                try:
                    oldest = self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                self.dropped += 1
                logger.warning(f"Writer queue full, dropped {oldest.name}")

    def _drain(self) -> None:
        while True:
            record = self._queue.get()
            try:
                if record is _STOP:
                    return
                self.sink.insert_record(record)
            except SinkError as e:
                self.failed += 1
                logger.error(f"Error inserting document into MongoDB: {e}")
            finally:
                self._queue.task_done()

    def close(self) -> None:
        """Write out everything still queued, then stop the writer thread."""
        if not self._thread.is_alive():
            return
        self._queue.put(_STOP)
        self._thread.join()
        logger.info(f"Sink writer stopped ({self.dropped} dropped, {self.failed} failed)")
