from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from formula_backfill.excel.reader import SheetHeaderError, preview_sheet, read_excel_file


def test_read_keeps_placeholders_as_text(make_workbook):
    path = make_workbook({"S": [["CAS号", "化学式"], ["50-00-0", "N/A"], ["64-17-5", "#N/A"], ["7732-18-5", "NULL"]]})
    dfs = read_excel_file(path)
    column = dfs["S"].iloc[1:, 1].tolist()
    assert column == ["N/A", "#N/A", "NULL"]


def test_read_target_sheets(make_workbook):
    path = make_workbook({"A": [["x"]], "B": [["y"]]})
    assert list(read_excel_file(path, target_sheets=["B"])) == ["B"]


def test_preview_sheet_limits_rows(make_workbook):
    rows = [["CAS号", "化学式"]] + [[f"{i}-00-0", ""] for i in range(10)]
    path = make_workbook({"S": rows})
    preview = preview_sheet(read_excel_file(path)["S"], "S", limit=3)
    assert preview.columns == ["CAS号", "化学式"]
    assert len(preview.rows) == 3
    assert preview.rows[0][0] == "0-00-0"
    assert preview.total_rows == 10


def test_preview_sheet_without_header():
    with pytest.raises(SheetHeaderError):
        preview_sheet(pd.DataFrame(), "Empty")


def test_read_missing_file(temp_workdir: Path):
    with pytest.raises(FileNotFoundError):
        read_excel_file(temp_workdir / "nope.xlsx")
