from __future__ import annotations

import statistics
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .resolution import FailureReason

"""Run statistics for one enrichment run.

RunStatistics is a plain value threaded through the orchestrator; nothing here
is module-level state. LookupTimingAccumulator collects per-lookup durations so
the summary can report average and p95 lookup latency.
"""

__all__ = [
    "RunPhase",
    "RunStatistics",
    "LookupTimingAccumulator",
]


class RunPhase(Enum):
    """Orchestrator state machine.

    State transitions: scanning → resolving → writing_back → reporting → done
    """
    SCANNING = "scanning"
    RESOLVING = "resolving"
    WRITING_BACK = "writing_back"
    REPORTING = "reporting"
    DONE = "done"


@dataclass
class RunStatistics:
    """Counters accumulated over the lifetime of a single run."""
    sheets_scanned: int = 0
    sheets_skipped: int = 0  # sheets without a formula column
    rows_scanned: int = 0  # data rows, header excluded
    rows_flagged: int = 0  # rows whose formula cell is empty/null-ish
    rows_enriched: int = 0
    rows_failed: int = 0
    failures_by_reason: Counter[FailureReason] = field(default_factory=Counter)
    phase: RunPhase = RunPhase.SCANNING
    cancelled: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None
    avg_lookup_seconds: float = 0.0
    p95_lookup_seconds: float = 0.0

    def record_failure(self, reason: FailureReason) -> None:
        self.rows_failed += 1
        self.failures_by_reason[reason] += 1

    def record_success(self) -> None:
        self.rows_enriched += 1

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def rows_unprocessed(self) -> int:
        """Flagged rows that were neither enriched nor failed (cancelled runs)."""
        return max(0, self.rows_flagged - self.rows_enriched - self.rows_failed)


class LookupTimingAccumulator:
    """Collects individual lookup durations and summarises them."""

    def __init__(self) -> None:
        self.lookup_times: list[float] = []

    def add(self, elapsed_seconds: float) -> None:
        self.lookup_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (count, avg_seconds, p95_seconds)."""
        if not self.lookup_times:
            return (0, 0.0, 0.0)

        count = len(self.lookup_times)
        avg = statistics.mean(self.lookup_times)
        if count == 1:
            p95 = self.lookup_times[0]
        else:
            p95 = statistics.quantiles(self.lookup_times, n=20, method="inclusive")[18]
        return (count, avg, p95)
