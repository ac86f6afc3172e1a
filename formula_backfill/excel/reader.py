from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

"""Read-only sheet previews for --inspect-data.

Cells are read as text with pandas' default NA conversion switched off, so
placeholders such as "N/A", "NULL" or "#N/A" show up exactly as the scanner
will see them instead of turning into NaN.
"""


class SheetHeaderError(Exception):
    """Raised when a sheet has no header row."""


@dataclass
class SheetPreview:
    sheet_name: str
    columns: list[str]
    rows: list[list[str]]  # first N data rows, header excluded
    total_rows: int  # data rows in the sheet


def read_excel_file(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read a workbook returning raw text DataFrames keyed by sheet name.

    Parameters
    ----------
    path: workbook path
    target_sheets: restrict to these sheet names (None means every sheet)
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            df = xls.parse(name, header=None, dtype=str, keep_default_na=False, na_values=[])
            dfs[str(name)] = df
    return dfs


def preview_sheet(df: pd.DataFrame, sheet_name: str, limit: int = 3) -> SheetPreview:
    """First row becomes the header; return up to `limit` data rows."""
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    columns = [str(c).strip() for c in df.iloc[0].tolist()]
    data_part = df.iloc[1:]
    rows = [[str(v) for v in raw] for raw in data_part.head(limit).itertuples(index=False, name=None)]
    return SheetPreview(
        sheet_name=sheet_name,
        columns=columns,
        rows=rows,
        total_rows=int(data_part.shape[0]),
    )
