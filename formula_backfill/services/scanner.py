from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from typing import Protocol

from ..models.column_index import ColumnIndex
from ..models.record import Record, SheetScan

"""Empty formula detection.

Walks a sheet's rows, locates the formula and CAS columns by header aliases,
and decides for each data row whether its formula cell is really filled in.

A formula cell counts as empty when, after trimming:
- it is the empty string, or
- it equals one of NULL_TOKENS exactly ("-", "N/A", "暂无", "#N/A", ...), or
- nothing is left once STRIP_CHARS are removed from both ends ("--/--", "( )").

Rows shorter than the formula column are empty as well.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FORMULA_ALIASES",
    "CAS_ALIASES",
    "NULL_TOKENS",
    "STRIP_CHARS",
    "CAS_ROW_OUT_OF_RANGE",
    "CAS_COLUMN_MISSING",
    "ColumnNotFound",
    "EmptyFieldScanner",
    "is_formula_empty",
    "is_usable_cas",
]

FORMULA_ALIASES: tuple[str, ...] = (
    "化学式", "formula", "chemical formula", "chemicalformula",
    "分子式", "化学公式", "结构式", "chemical", "formula name",
    "化学结构", "分子结构",
)

CAS_ALIASES: tuple[str, ...] = (
    "cas", "cas号", "cas number", "cas no", "casno",
    "cas编号", "cas号码", "cas registry", "cas id",
    "卡斯", "卡斯号", "cas代码",
)

NULL_TOKENS: frozenset[str] = frozenset({
    "-", "--", "---", "----",
    "N/A", "NA", "n/a", "na", "N.A.",
    "NULL", "null", "nil",
    "未知", "不详", "无", "暂无", "未提供",
    "unknown", "none", "not available", "not provided",
    "待补充", "待定", "空缺", "缺",
    "TBD", "TBA", "待确认",
    "#N/A", "#REF!", "#VALUE!", "#NAME?",
})

STRIP_CHARS = ".-_/*\\|()[]{}<>~!@#$%^&* \t\n\r"

# Placed in cas_by_row instead of a CAS identifier; never sent to the resolver.
CAS_ROW_OUT_OF_RANGE = "ERROR: row number out of range"
CAS_COLUMN_MISSING = "ERROR: row has no CAS cell"

PROGRESS_EVERY = 500


class ColumnNotFound(Exception):
    """Raised when no header matches any alias for a required field."""

    def __init__(self, sheet: str, field: str, aliases: Sequence[str]) -> None:
        super().__init__(f"sheet '{sheet}': no {field} column (aliases tried: {', '.join(aliases)})")
        self.sheet = sheet
        self.field = field


class RowSource(Protocol):
    """The part of the tabular store the scanner reads from."""

    def read_rows(self, sheet: str) -> list[list[str]]: ...

    def resolve_column(self, header_row: Sequence[str], aliases: Sequence[str]) -> int | None: ...


def is_formula_empty(
    value: str,
    null_tokens: Collection[str] = NULL_TOKENS,
    strip_chars: str = STRIP_CHARS,
) -> bool:
    trimmed = value.strip()
    if trimmed == "":
        return True
    if trimmed in null_tokens:
        return True
    # a cell made only of punctuation/whitespace carries no formula
    return trimmed.strip(strip_chars) == ""


def is_usable_cas(cas: str) -> bool:
    """False for blanks and for the lookup sentinels above."""
    return bool(cas.strip()) and cas not in (CAS_ROW_OUT_OF_RANGE, CAS_COLUMN_MISSING)


class EmptyFieldScanner:
    """Classifies the data rows of a sheet and pairs empty ones with CAS numbers."""

    def __init__(
        self,
        store: RowSource,
        *,
        formula_aliases: Sequence[str] | None = None,
        cas_aliases: Sequence[str] | None = None,
        null_tokens: Collection[str] | None = None,
    ) -> None:
        self.store = store
        self.formula_aliases = tuple(formula_aliases or FORMULA_ALIASES)
        self.cas_aliases = tuple(cas_aliases or CAS_ALIASES)
        self.null_tokens = frozenset(null_tokens) if null_tokens is not None else NULL_TOKENS

    def is_empty(self, value: str) -> bool:
        return is_formula_empty(value, self.null_tokens)

    def _resolve(self, sheet: str, header: Sequence[str], field: str, aliases: Sequence[str]) -> ColumnIndex:
        idx = self.store.resolve_column(header, aliases)
        if idx is None:
            raise ColumnNotFound(sheet, field, aliases)
        normalized = header[idx].strip().lower()
        alias = next(a for a in aliases if a.strip().lower() and a.strip().lower() in normalized)
        column = ColumnIndex(field=field, position=idx, header=header[idx], alias=alias)
        logger.info(f"sheet '{sheet}': {field} column = {column.display_position} ({column.header})")
        return column

    def find_empty_rows(self, rows: Sequence[Sequence[str]], formula_col: int) -> list[int]:
        """Return 1-based row numbers whose formula cell is empty (header excluded)."""
        empty_rows: list[int] = []
        for row_index in range(1, len(rows)):
            row = rows[row_index]
            if len(row) <= formula_col or self.is_empty(row[formula_col]):
                empty_rows.append(row_index + 1)
                if len(empty_rows) % PROGRESS_EVERY == 0:
                    logger.info(f"found {len(empty_rows)} empty formula rows so far...")
        return empty_rows

    @staticmethod
    def lookup_cas(rows: Sequence[Sequence[str]], cas_col: int, row_numbers: Sequence[int]) -> dict[int, str]:
        """Read the CAS cell of exactly the given rows.

        A bad row number or a row too short to reach the CAS column yields a
        sentinel string for that row instead of aborting the batch.
        """
        result: dict[int, str] = {}
        for row_number in row_numbers:
            if row_number < 1 or row_number > len(rows):
                result[row_number] = CAS_ROW_OUT_OF_RANGE
                continue
            row = rows[row_number - 1]
            if len(row) <= cas_col:
                result[row_number] = CAS_COLUMN_MISSING
                continue
            result[row_number] = row[cas_col].strip()
        return result

    def scan_sheet(self, sheet: str) -> SheetScan:
        """Scan one sheet.

        Raises:
            ColumnNotFound: when the formula column cannot be resolved. A missing
                CAS column is not raised; it is reported on the SheetScan.
        """
        rows = self.store.read_rows(sheet)
        if not rows:
            logger.info(f"sheet '{sheet}' is empty")
            return SheetScan(sheet=sheet, formula_column=None, cas_column=None)

        header = rows[0]
        logger.info(f"sheet '{sheet}': {len(rows)} rows (including header)")
        formula = self._resolve(sheet, header, "formula", self.formula_aliases)
        empty_rows = self.find_empty_rows(rows, formula.position)
        logger.info(f"sheet '{sheet}': {len(empty_rows)} rows with empty formula")

        try:
            cas = self._resolve(sheet, header, "cas", self.cas_aliases)
        except ColumnNotFound as e:
            logger.warning(str(e))
            return SheetScan(
                sheet=sheet,
                formula_column=formula,
                cas_column=None,
                rows_scanned=len(rows) - 1,
                empty_rows=empty_rows,
                cas_error=str(e),
            )

        return SheetScan(
            sheet=sheet,
            formula_column=formula,
            cas_column=cas,
            rows_scanned=len(rows) - 1,
            empty_rows=empty_rows,
            cas_by_row=self.lookup_cas(rows, cas.position, empty_rows),
        )

    def records(self, sheet: str) -> list[Record]:
        """Materialize every data row of a sheet as a Record."""
        rows = self.store.read_rows(sheet)
        if not rows:
            return []
        header = rows[0]
        formula_col = self._resolve(sheet, header, "formula", self.formula_aliases).position
        cas_idx = self.store.resolve_column(header, self.cas_aliases)
        records: list[Record] = []
        for row_index in range(1, len(rows)):
            row = rows[row_index]
            formula = row[formula_col] if len(row) > formula_col else ""
            cas = row[cas_idx].strip() if cas_idx is not None and len(row) > cas_idx else ""
            records.append(Record(
                row_number=row_index + 1,
                cas=cas,
                formula=formula,
                needs_enrichment=len(row) <= formula_col or self.is_empty(formula),
            ))
        return records
