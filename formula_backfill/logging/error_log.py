from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

from ..models.error_record import ErrorLogEntry

"""Append-only lookup error log.

One plain-text line per failed lookup: "<timestamp> | <status> | <url>".
The file is created on first append and never rotated or truncated here.
It is a diagnostic artifact; nothing in a run reads it back for retries.
"""

__all__ = [
    "ErrorLogEntry",
    "ErrorLogSink",
    "ErrorLogFile",
    "MemoryErrorLog",
]


class ErrorLogSink(Protocol):
    """Anything the orchestrator can hand failed lookups to."""

    def append(self, entry: ErrorLogEntry) -> None: ...


class ErrorLogFile:
    """Writes each entry straight to disk, one open/append/close per entry.

    Entries are not buffered: a crash mid-run keeps every line appended so far.
    Appends are serialized with a lock so the sink is safe to share between
    threads.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._count = 0

    def append(self, entry: ErrorLogEntry) -> None:
        with self._lock:
            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(entry.to_log_line() + "\n")
            self._count += 1

    def __len__(self) -> int:
        """Entries appended through this instance (not lines already in the file)."""
        return self._count


class MemoryErrorLog:
    """In-memory sink for callers that embed the orchestrator, and for tests."""

    def __init__(self) -> None:
        self.entries: list[ErrorLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: ErrorLogEntry) -> None:
        with self._lock:
            self.entries.append(entry)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self.entries)
