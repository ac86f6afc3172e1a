from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""ErrorLogEntry model for the append-only lookup error log.

Each entry becomes one plain-text line:

    2025-06-01 14:03:22 | 404 | http://www.ichemistry.cn/chemistry/50-00-0.htm

The status field is "-" when the request never got an HTTP answer
(connection failure, timeout).
"""

__all__ = [
    "ErrorLogEntry",
    "TIMESTAMP_FMT",
]

TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class ErrorLogEntry:
    """One failed lookup.

    Attributes:
        timestamp: Local time formatted with TIMESTAMP_FMT
        status_code: HTTP status, or None when no response was received
        url: The request URL built from the CAS identifier
    """
    timestamp: str
    status_code: int | None
    url: str

    @staticmethod
    def create(status_code: int | None, url: str) -> ErrorLogEntry:
        """Create an entry stamped with the current local time."""
        return ErrorLogEntry(
            timestamp=datetime.now().strftime(TIMESTAMP_FMT),
            status_code=status_code,
            url=url,
        )

    def to_log_line(self) -> str:
        status = str(self.status_code) if self.status_code is not None else "-"
        return f"{self.timestamp} | {status} | {self.url}"
