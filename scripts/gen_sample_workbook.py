#!/usr/bin/env python3
"""Generate a synthetic reagent workbook for trying out and timing the backfill.

Layout of every sheet:
- Row 1: header (序号, 名称, CAS号, 化学式, 规格)
- Row 2+: data rows; a configurable share of formula cells is blank or holds
  a placeholder such as "-", "N/A" or "暂无"

CAS numbers are taken from a small list of real substances so a live run has
something to find, padded with made-up numbers the reference site will not know.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

KNOWN_SUBSTANCES: list[tuple[str, str, str]] = [
    ("50-00-0", "甲醛", "CH2O"),
    ("64-17-5", "乙醇", "C2H6O"),
    ("67-56-1", "甲醇", "CH4O"),
    ("67-64-1", "丙酮", "C3H6O"),
    ("7732-18-5", "水", "H2O"),
    ("7647-01-0", "盐酸", "HCl"),
    ("7664-93-9", "硫酸", "H2SO4"),
    ("1310-73-2", "氢氧化钠", "NaOH"),
    ("7647-14-5", "氯化钠", "NaCl"),
    ("50-99-7", "葡萄糖", "C6H12O6"),
]

PLACEHOLDERS = ["", "", "-", "N/A", "暂无", "#N/A", "未知"]
GRADES = ["AR", "GR", "CP", "LR", "HPLC"]


def generate_reagent_rows(rows: int, empty_ratio: float = 0.3, seed: int = 42) -> pd.DataFrame:
    """Build the rows of one sheet, header excluded.

    Args:
        rows: number of data rows
        empty_ratio: share of rows whose formula cell is blank/placeholder
        seed: random seed for reproducible files
    """
    np.random.seed(seed)

    picks = np.random.randint(0, len(KNOWN_SUBSTANCES) * 2, rows)
    empty_mask = np.random.random(rows) < empty_ratio
    placeholders = np.random.choice(PLACEHOLDERS, rows)
    grades = np.random.choice(GRADES, rows)

    records = []
    for i in range(rows):
        pick = int(picks[i])
        if pick < len(KNOWN_SUBSTANCES):
            cas, name, formula = KNOWN_SUBSTANCES[pick]
        else:
            # check digit left as-is; lookups for these are expected to fail
            cas = f"{np.random.randint(100, 99999)}-{np.random.randint(10, 99)}-{pick % 10}"
            name, formula = f"试剂{i + 1}", "C2H4O2"
        records.append({
            "序号": i + 1,
            "名称": name,
            "CAS号": cas,
            "化学式": str(placeholders[i]) if empty_mask[i] else formula,
            "规格": str(grades[i]),
        })
    return pd.DataFrame(records, columns=["序号", "名称", "CAS号", "化学式", "规格"])


def create_workbook(
    output_path: Path,
    rows: int,
    sheets: list[str] | None = None,
    empty_ratio: float = 0.3,
    seed: int = 42,
) -> int:
    """Write the workbook and return the number of formula cells left empty."""
    if sheets is None:
        sheets = ["试剂"]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    empty = 0
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for offset, sheet_name in enumerate(sheets):
            df = generate_reagent_rows(rows, empty_ratio, seed + offset)
            empty += int((df["化学式"].isin(PLACEHOLDERS)).sum())
            df.to_excel(writer, sheet_name=sheet_name, index=False)

    print(f"Created workbook: {output_path}")
    print(f"  Sheets: {len(sheets)} ({', '.join(sheets)})")
    print(f"  Rows per sheet: {rows} (+ 1 header row)")
    print(f"  Empty formula cells: {empty:,}")
    return empty


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic reagent workbook with missing chemical formulas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/reagents.xlsx
  %(prog)s big.xlsx --rows 50000 --empty-ratio 0.1
  %(prog)s multi.xlsx --sheets 有机 无机 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--rows", type=int, default=1_000, help="Data rows per sheet (default: 1,000)")
    parser.add_argument("--sheets", nargs="+", default=["试剂"], help="Sheet names (default: 试剂)")
    parser.add_argument(
        "--empty-ratio", type=float, default=0.3, help="Share of empty formula cells (default: 0.3)"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0.0 <= args.empty_ratio <= 1.0:
        print("Error: --empty-ratio must be between 0 and 1", file=sys.stderr)
        return 1

    create_workbook(args.output, args.rows, args.sheets, args.empty_ratio, args.seed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
