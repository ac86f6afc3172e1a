from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from ..models.record import SheetScan

"""Plain-text report of rows whose formula is empty.

Row numbers are written ten per line, left-aligned in six-character columns,
one block per sheet, followed by the overall count and row range.
"""

logger = logging.getLogger(__name__)

ROWS_PER_LINE = 10


def group_row_numbers(rows: Sequence[int], per_line: int = ROWS_PER_LINE) -> list[str]:
    """["2     5     9     ", ...] - ten numbers per line, each padded to six."""
    lines = []
    for i in range(0, len(rows), per_line):
        lines.append("".join(f"{n:<6d}" for n in rows[i:i + per_line]))
    return lines


def render_empty_row_report(source: Path | str, scans: Sequence[SheetScan], now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    total = sum(scan.empty_count for scan in scans)
    out = [
        "Empty chemical formula report",
        "=============================",
        "",
        f"Generated: {stamp}",
        f"Source file: {source}",
        f"Total empty rows: {total}",
        "",
    ]
    for scan in scans:
        out.append(f"Sheet: {scan.sheet} ({scan.empty_count} of {scan.rows_scanned} data rows)")
        out.append("-" * 30)
        if scan.cas_error:
            out.append(f"note: {scan.cas_error}")
        out.extend(line.rstrip() for line in group_row_numbers(scan.empty_rows))
        if scan.empty_rows:
            first, last = scan.empty_rows[0], scan.empty_rows[-1]
            out.append(f"Row range: {first} - {last} (span {last - first + 1} rows)")
        out.append("")
    out.append("=============================")
    return "\n".join(out) + "\n"


def write_empty_row_report(path: Path | str, source: Path | str, scans: Sequence[SheetScan]) -> Path:
    """Write the report, creating the parent directory when needed."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_empty_row_report(source, scans), encoding="utf-8")
    logger.info(f"empty-row report written to {target}")
    return target
