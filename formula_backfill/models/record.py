from __future__ import annotations

from dataclasses import dataclass, field

from .column_index import ColumnIndex

"""Row-level models for the formula backfill run.

A Record is materialized transiently from the backing sheet; the workbook stays
the source of truth. SheetScan is what the scanner hands to the orchestrator.
"""

__all__ = [
    "Record",
    "EnrichmentTask",
    "SheetScan",
]


@dataclass(frozen=True)
class Record:
    """One spreadsheet row as seen by the scanner.

    row_number is 1-based and stable for the lifetime of the file (header = row 1).
    """
    row_number: int
    cas: str
    formula: str
    needs_enrichment: bool = False


@dataclass(frozen=True)
class EnrichmentTask:
    """Unit of work handed to the resolver: one row, one CAS identifier."""
    sheet: str
    row_number: int  # 1-based, header row excluded from data rows
    cas: str
    formula_column: int  # 0-based column index of the formula field


@dataclass(frozen=True)
class SheetScan:
    """Scan output for a single sheet."""
    sheet: str
    formula_column: ColumnIndex | None
    cas_column: ColumnIndex | None
    rows_scanned: int = 0
    empty_rows: list[int] = field(default_factory=list)
    cas_by_row: dict[int, str] = field(default_factory=dict)
    cas_error: str | None = None  # set when the CAS column could not be resolved

    @property
    def empty_count(self) -> int:
        return len(self.empty_rows)

    def tasks(self) -> list[EnrichmentTask]:
        """Pair every empty row with its CAS identifier, in row order."""
        if self.formula_column is None or self.cas_column is None:
            return []
        return [
            EnrichmentTask(
                sheet=self.sheet,
                row_number=row,
                cas=self.cas_by_row.get(row, ""),
                formula_column=self.formula_column.position,
            )
            for row in self.empty_rows
        ]
