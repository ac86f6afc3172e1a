from __future__ import annotations

import os
import shutil
import tempfile
import zipfile
from collections.abc import Sequence
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

"""Workbook-backed tabular store.

The workbook is opened once; reads come from the in-memory copy and writes are
buffered there until persist(). persist() is the only operation that touches
the file after opening.

persist() saves to a temporary file in the same directory and swaps it in with
os.replace, so after a crash the file holds either every write since the last
persist or none of them.

Row numbers are 1-based (header row = 1). Column positions are 0-based, matching
the indices returned by resolve_column.
"""

__all__ = [
    "StoreError",
    "NoSheetsError",
    "WriteError",
    "PersistError",
    "WorkbookStore",
    "resolve_column",
    "cell_text",
]


class StoreError(Exception):
    """Raised when the workbook cannot be opened or read."""


class NoSheetsError(StoreError):
    """Raised when the workbook contains no sheets."""


class WriteError(StoreError):
    """Raised when a cell write is rejected (unknown sheet, invalid position)."""


class PersistError(StoreError):
    """Raised when buffered writes cannot be saved to disk."""


def cell_text(value: Any) -> str:
    """Render a cell value the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def resolve_column(header_row: Sequence[str], aliases: Sequence[str]) -> int | None:
    """Return the 0-based index of the first header matching an alias.

    Headers are trimmed and lowercased, then matched by substring. Alias order
    is the tie-break: every column is tried against the first alias before the
    second alias is considered, and columns are tried left to right.
    """
    normalized = [str(h).strip().lower() for h in header_row]
    for alias in aliases:
        needle = alias.strip().lower()
        if not needle:
            continue
        for idx, header in enumerate(normalized):
            if needle in header:
                return idx
    return None


def _trim_row(values: Sequence[Any]) -> list[str]:
    row = [cell_text(v) for v in values]
    while row and row[-1] == "":
        row.pop()
    return row


class WorkbookStore:
    """TabularStore over an .xlsx file (openpyxl)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise StoreError(f"workbook not found: {self.path}")
        try:
            self._wb: Workbook = openpyxl.load_workbook(self.path)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            raise StoreError(f"failed to open workbook {self.path}: {e}") from e
        # (sheet, row_number, column) -> value before the first buffered write
        self._pending: dict[tuple[str, int, int], Any] = {}

    # -- reads -------------------------------------------------------------

    def list_sheets(self) -> list[str]:
        sheets = list(self._wb.sheetnames)
        if not sheets:
            raise NoSheetsError(f"workbook has no sheets: {self.path}")
        return sheets

    def _worksheet(self, sheet: str) -> Worksheet:
        if sheet not in self._wb.sheetnames:
            raise StoreError(f"sheet not found: {sheet}")
        return self._wb[sheet]

    def read_rows(self, sheet: str) -> list[list[str]]:
        """All rows of a sheet as strings; the first row is the header.

        Trailing empty cells are dropped from each row, so a row can be shorter
        than the header. Trailing empty rows are dropped; interior empty rows
        are kept so row numbers line up with the sheet.
        """
        ws = self._worksheet(sheet)
        rows = [_trim_row(values) for values in ws.iter_rows(values_only=True)]
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def resolve_column(self, header_row: Sequence[str], aliases: Sequence[str]) -> int | None:
        return resolve_column(header_row, aliases)

    # -- writes ------------------------------------------------------------

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def set_cell(self, sheet: str, row_number: int, column: int, value: Any) -> None:
        """Buffer a write. Nothing reaches the file until persist()."""
        if sheet not in self._wb.sheetnames:
            raise WriteError(f"sheet not found: {sheet}")
        if row_number < 1:
            raise WriteError(f"invalid row number {row_number} (rows are 1-based)")
        if column < 0:
            raise WriteError(f"invalid column index {column}")
        cell = self._wb[sheet].cell(row=row_number, column=column + 1)
        original = cell.value
        try:
            cell.value = value
        except (IllegalCharacterError, ValueError, TypeError) as e:
            raise WriteError(f"cannot write {value!r} to {sheet}!{cell.coordinate}: {e}") from e
        self._pending.setdefault((sheet, row_number, column), original)

    def persist(self) -> None:
        """Atomically save all buffered writes."""
        if not self._pending:
            return
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.stem}-", suffix=self.path.suffix, dir=self.path.parent
            )
            os.close(fd)
            self._wb.save(tmp_name)
            # mkstemp creates 0600; keep the workbook's own permissions
            shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistError(f"failed to save workbook {self.path}: {e}") from e
        self._pending.clear()

    def rollback(self) -> int:
        """Restore every cell written since the last persist. Returns the count."""
        restored = len(self._pending)
        for (sheet, row_number, column), original in self._pending.items():
            self._wb[sheet].cell(row=row_number, column=column + 1).value = original
        self._pending.clear()
        return restored

    def close(self) -> None:
        self._wb.close()

    def __enter__(self) -> WorkbookStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
