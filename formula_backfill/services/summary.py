from __future__ import annotations

from ..models.resolution import FailureReason
from ..models.run_statistics import RunStatistics

"""SUMMARY line rendering.

Format:
SUMMARY sheets={scanned}/{total} rows={scanned} flagged={flagged} enriched={enriched}
failed={failed} [reasons={reason:count,...}] elapsed_sec={elapsed} [cancelled=1]
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_failure_breakdown(stats: RunStatistics) -> str:
    """Counts as "fetch_error:2,extraction_miss:1", in FailureReason declaration order."""
    parts = [
        f"{reason.value}:{stats.failures_by_reason[reason]}"
        for reason in FailureReason
        if stats.failures_by_reason.get(reason)
    ]
    return ",".join(parts)


def render_summary_line(stats: RunStatistics) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> stats = RunStatistics(sheets_scanned=1, rows_scanned=2, rows_flagged=1, rows_enriched=1)
        >>> render_summary_line(stats)
        'SUMMARY sheets=1/1 rows=2 flagged=1 enriched=1 failed=0 elapsed_sec=0'
    """
    total_sheets = stats.sheets_scanned + stats.sheets_skipped
    line = (
        f"SUMMARY sheets={stats.sheets_scanned}/{total_sheets} "
        f"rows={stats.rows_scanned} "
        f"flagged={stats.rows_flagged} "
        f"enriched={stats.rows_enriched} "
        f"failed={stats.rows_failed}"
    )
    breakdown = render_failure_breakdown(stats)
    if breakdown:
        line += f" reasons={breakdown}"
    line += f" elapsed_sec={_format_seconds(stats.elapsed_seconds)}"
    if stats.cancelled:
        line += f" cancelled=1 unprocessed={stats.rows_unprocessed}"
    return line
