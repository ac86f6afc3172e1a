from __future__ import annotations

from pathlib import Path

import pytest

from formula_backfill.excel.store import WorkbookStore
from formula_backfill.services.scanner import (
    CAS_COLUMN_MISSING,
    CAS_ROW_OUT_OF_RANGE,
    ColumnNotFound,
    EmptyFieldScanner,
    is_formula_empty,
    is_usable_cas,
)


class RowsStore:
    """Minimal row source over in-memory rows."""

    def __init__(self, sheets: dict[str, list[list[str]]]) -> None:
        self.sheets = sheets

    def read_rows(self, sheet: str) -> list[list[str]]:
        return self.sheets[sheet]

    def resolve_column(self, header_row, aliases):
        from formula_backfill.excel.store import resolve_column
        return resolve_column(header_row, aliases)


@pytest.mark.parametrize(
    "value",
    ["", "   ", "-", "--", "N/A", "暂无", "#N/A", "未知", "NULL", "unknown", " n/a ", "--/--", "( )", "***"],
)
def test_null_ish_values_are_empty(value):
    assert is_formula_empty(value) is True


@pytest.mark.parametrize("value", ["H2O", "C6H12O6", " CH2O ", "NaCl", "C2H6O"])
def test_real_formulas_are_present(value):
    assert is_formula_empty(value) is False


def test_custom_null_tokens_replace_defaults():
    assert is_formula_empty("missing", null_tokens={"missing"}) is True
    assert is_formula_empty("暂无", null_tokens={"missing"}) is False


def test_is_usable_cas():
    assert is_usable_cas("50-00-0")
    assert not is_usable_cas("")
    assert not is_usable_cas("  ")
    assert not is_usable_cas(CAS_ROW_OUT_OF_RANGE)
    assert not is_usable_cas(CAS_COLUMN_MISSING)


def test_short_row_is_always_empty():
    scanner = EmptyFieldScanner(RowsStore({}))
    rows = [["CAS号", "名称", "化学式"], ["50-00-0", "甲醛"], ["64-17-5", "乙醇", "C2H6O"]]
    assert scanner.find_empty_rows(rows, 2) == [2]


def test_find_empty_rows_uses_one_based_numbers_and_skips_header():
    scanner = EmptyFieldScanner(RowsStore({}))
    rows = [["CAS号", "化学式"], ["a", "H2O"], ["b", "-"], ["c", ""], ["d", "NaCl"]]
    assert scanner.find_empty_rows(rows, 1) == [3, 4]


def test_lookup_cas_sentinels():
    rows = [["名称", "CAS号"], ["水", "7732-18-5"], ["甲醛"]]
    result = EmptyFieldScanner.lookup_cas(rows, 1, [2, 3, 9, 0])
    assert result == {
        2: "7732-18-5",
        3: CAS_COLUMN_MISSING,
        9: CAS_ROW_OUT_OF_RANGE,
        0: CAS_ROW_OUT_OF_RANGE,
    }


def test_lookup_cas_strips_whitespace():
    rows = [["CAS号"], ["  50-00-0 "]]
    assert EmptyFieldScanner.lookup_cas(rows, 0, [2]) == {2: "50-00-0"}


def test_scan_sheet_pairs_empty_rows_with_cas(reagent_workbook: Path):
    with WorkbookStore(reagent_workbook) as store:
        scan = EmptyFieldScanner(store).scan_sheet("Reagents")
    assert scan.empty_rows == [2]
    assert scan.cas_by_row == {2: "50-00-0"}
    assert scan.rows_scanned == 2
    assert scan.formula_column.position == 1
    assert scan.formula_column.header == "化学式"
    assert scan.cas_column.position == 0
    tasks = scan.tasks()
    assert [(t.row_number, t.cas, t.formula_column) for t in tasks] == [(2, "50-00-0", 1)]


def test_scan_sheet_without_formula_column_raises():
    store = RowsStore({"S": [["CAS号", "名称"], ["50-00-0", "甲醛"]]})
    with pytest.raises(ColumnNotFound) as e:
        EmptyFieldScanner(store).scan_sheet("S")
    assert e.value.field == "formula"
    assert e.value.sheet == "S"


def test_scan_sheet_without_cas_column_still_reports_empty_rows():
    store = RowsStore({"S": [["名称", "化学式"], ["甲醛", ""], ["水", "H2O"]]})
    scan = EmptyFieldScanner(store).scan_sheet("S")
    assert scan.empty_rows == [2]
    assert scan.cas_column is None
    assert scan.cas_error and "cas" in scan.cas_error
    assert scan.tasks() == []


def test_scan_empty_sheet():
    scan = EmptyFieldScanner(RowsStore({"S": []})).scan_sheet("S")
    assert scan.formula_column is None
    assert scan.empty_rows == []
    assert scan.rows_scanned == 0


def test_scan_sheet_with_custom_aliases():
    store = RowsStore({"S": [["Registry", "Summenformel"], ["50-00-0", ""]]})
    scanner = EmptyFieldScanner(store, formula_aliases=["summenformel"], cas_aliases=["registry"])
    scan = scanner.scan_sheet("S")
    assert scan.cas_by_row == {2: "50-00-0"}


def test_records_materialize_every_data_row():
    store = RowsStore({"S": [["CAS号", "化学式"], ["50-00-0", "暂无"], ["64-17-5", "C2H6O"], ["7732-18-5"]]})
    records = EmptyFieldScanner(store).records("S")
    assert [(r.row_number, r.cas, r.needs_enrichment) for r in records] == [
        (2, "50-00-0", True),
        (3, "64-17-5", False),
        (4, "7732-18-5", True),
    ]
    assert records[1].formula == "C2H6O"
