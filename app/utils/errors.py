"""
Error taxonomy for tracelog-watchman.

Fatal errors stop the process during startup or shutdown. Everything raised
while walking the tree or consuming events is recoverable: it is logged and
the record in question is dropped.
"""

from typing import Optional


class TracelogError(Exception):
    """Base class for all tracelog-watchman errors."""


class StartupFatal(TracelogError):
    """Log file or store configuration could not be opened/parsed."""


class ConnectionFatal(TracelogError):
    """Connecting to or disconnecting from the metadata store failed."""


class SinkError(TracelogError):
    """A record could not be inserted into the metadata store."""


class WatchError(TracelogError):
    """Reported by the notification facility on its error stream."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
