"""
Pydantic models for tracelog-watchman.

A FileCreationRecord is the unit of persisted data: one document per observed
file creation.
"""

import json
import os
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


def format_mtime(mtime: float) -> str:
    """Render a modification time as the default string of a local, aware datetime."""
    return str(datetime.fromtimestamp(mtime).astimezone())


def clean_name(path: str) -> str:
    """Replace undecodable filename bytes (surrogate escapes) with U+FFFD."""
    return path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


class FileCreationRecord(BaseModel):
    """Name and modification time of a newly created file."""
    name: str
    date: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_stat(cls, path: str, stat_result: os.stat_result) -> "FileCreationRecord":
        """Build a record from a path and its stat result."""
        return cls(name=clean_name(path), date=format_mtime(stat_result.st_mtime))

    def to_document(self) -> Dict[str, Any]:
        """Fresh document for insertion (the driver adds ``_id`` in place)."""
        return {"name": self.name, "date": self.date}

    def to_log_line(self) -> str:
        """JSON text written to the log for every recorded file."""
        return self.model_dump_json()

    @classmethod
    def from_log_line(cls, line: str) -> "FileCreationRecord":
        """
        Rebuild a record from a log line.

        Accepts either the bare JSON text or a full log line whose message is
        the JSON text; the log prefix never contains a brace.
        """
        start = line.index("{")
        return cls.model_validate(json.loads(line[start:]))
