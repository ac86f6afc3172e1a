from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

- One tqdm bar over flagged rows while lookups run
- A one-line indicator per sheet while scanning
- Both stay silent when stdout is not a TTY (CI, redirected output)
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "SheetProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar over the rows being resolved."""

    def __init__(self, total_rows: int, *, description: str = "Resolving formulas", enabled: bool = True) -> None:
        self.total_rows = total_rows
        self.description = description
        self.done = 0

        self.enabled = enabled and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, label: str | None = None) -> None:
        """Mark one row as finished (success or failure)."""
        self.done += 1
        if self.enabled and self.pbar is not None:
            if label:
                self.pbar.set_description(f"{self.description} ({label})")
            self.pbar.update(1)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class SheetProgressIndicator:
    """Prints "Sheet i/n: name - k empty" lines during the scan."""

    def __init__(self, total_sheets: int, *, enabled: bool = True) -> None:
        self.total_sheets = total_sheets
        self.current_sheet = 0
        self.enabled = enabled and is_tty_enabled()

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        if self.enabled:
            print(f"  Sheet {self.current_sheet}/{self.total_sheets}: {sheet_name}", end="", flush=True)

    def finish_sheet(self, success: bool = True, empty_rows: int = 0) -> None:
        if self.enabled:
            status = "✓" if success else "✗"
            if empty_rows > 0:
                print(f" - {empty_rows} empty {status}")
            else:
                print(f" {status}")
