from __future__ import annotations

from dataclasses import dataclass

"""ColumnIndex model: a logical field resolved to a physical column."""

__all__ = [
    "ColumnIndex",
]


@dataclass(frozen=True)
class ColumnIndex:
    """Resolved mapping from a logical field name to a column position.

    Attributes:
        field: Logical field name ("formula" or "cas")
        position: 0-based column index in the header row
        header: Header text exactly as it appears in the sheet
        alias: The alias that matched the header
    """
    field: str
    position: int
    header: str
    alias: str

    @property
    def display_position(self) -> int:
        """1-based column number, as shown in spreadsheet applications."""
        return self.position + 1
