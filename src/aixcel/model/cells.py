"""
Cells & Coordinates (Data Model)
================================
This module defines the value types every other layer passes around.

Why is this file needed?
------------------------
1. Identity: A Coordinate is the key of the cell cache, of the selection and
   of pending writes, so it must be hashable and ordered.
2. Sparsity: The grid is unbounded; only non-blank Cells are ever stored.
3. Wire format: Cells know how to turn themselves into the backend's JSON
   shape (snake_case fields plus the sheet name) and back.

Classes:
    Coordinate: A (row, col) pair.
    CellRange: An axis-aligned rectangle of coordinates.
    Cell: Raw text plus optional formatting tokens.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional

FORMAT_FIELDS: tuple[str, ...] = ("font_weight", "font_style", "background_color")


@dataclass(frozen=True, order=True)
class Coordinate:
    row: int
    col: int

    def __post_init__(self) -> None:
        if self.row < 0 or self.col < 0:
            raise ValueError(f"Coordinates must be non-negative, got ({self.row}, {self.col}).")

    def shifted(self, d_row: int, d_col: int) -> Coordinate:
        """Move by a delta, clamping at row/col 0 (the grid has no upper edge)."""
        return Coordinate(max(0, self.row + d_row), max(0, self.col + d_col))

    def to_dict(self) -> Dict[str, int]:
        return {"row": self.row, "col": self.col}


@dataclass(frozen=True)
class CellRange:
    """Inclusive rectangle [top..bottom] x [left..right]."""
    top: int
    left: int
    bottom: int
    right: int

    @classmethod
    def spanning(cls, a: Coordinate, b: Coordinate) -> CellRange:
        """Rectangle with corners a and b, independent of their order."""
        return cls(
            top=min(a.row, b.row),
            left=min(a.col, b.col),
            bottom=max(a.row, b.row),
            right=max(a.col, b.col),
        )

    @classmethod
    def bounding(cls, coords) -> Optional[CellRange]:
        """Smallest rectangle containing every coordinate, or None if there are none."""
        coords = list(coords)
        if not coords:
            return None
        return cls(
            top=min(c.row for c in coords),
            left=min(c.col for c in coords),
            bottom=max(c.row for c in coords),
            right=max(c.col for c in coords),
        )

    @property
    def n_rows(self) -> int:
        return self.bottom - self.top + 1

    @property
    def n_cols(self) -> int:
        return self.right - self.left + 1

    @property
    def top_left(self) -> Coordinate:
        return Coordinate(self.top, self.left)

    @property
    def bottom_right(self) -> Coordinate:
        return Coordinate(self.bottom, self.right)

    def contains(self, coord: Coordinate) -> bool:
        return self.top <= coord.row <= self.bottom and self.left <= coord.col <= self.right

    def union(self, other: CellRange) -> CellRange:
        return CellRange(
            top=min(self.top, other.top),
            left=min(self.left, other.left),
            bottom=max(self.bottom, other.bottom),
            right=max(self.right, other.right),
        )

    def __iter__(self) -> Iterator[Coordinate]:
        # Row-major, O(area)
        for r in range(self.top, self.bottom + 1):
            for c in range(self.left, self.right + 1):
                yield Coordinate(r, c)

    def __len__(self) -> int:
        return self.n_rows * self.n_cols


@dataclass(frozen=True)
class Cell:
    """
    One grid cell as the client knows it.
    Formatting tokens are free-form strings; None means 'default'.
    """
    row: int
    col: int
    value: str = ""
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    background_color: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.row, self.col)

    @property
    def is_blank(self) -> bool:
        """Blank cells are logically absent and never kept in the cache."""
        return self.value == "" and all(getattr(self, f) is None for f in FORMAT_FIELDS)

    @property
    def formatting(self) -> Dict[str, Optional[str]]:
        return {f: getattr(self, f) for f in FORMAT_FIELDS}

    def merged(self, changes: Dict[str, Any]) -> Cell:
        """Copy with the given fields overwritten; unknown keys are ignored."""
        allowed = {k: v for k, v in changes.items() if k == "value" or k in FORMAT_FIELDS}
        if "value" in allowed and allowed["value"] is None:
            allowed["value"] = ""
        return replace(self, **allowed)

    def to_dict(self, sheet: Optional[str] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "row": self.row,
            "col": self.col,
            "value": self.value,
            "font_weight": self.font_weight,
            "font_style": self.font_style,
            "background_color": self.background_color,
        }
        if sheet is not None:
            data["sheet"] = sheet
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Cell:
        try:
            row = int(data["row"])
            col = int(data["col"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Cell payload needs integer 'row' and 'col': {data!r}") from e
        if row < 0 or col < 0:
            raise ValueError(f"Cell payload has a negative position: {data!r}")
        return cls(
            row=row,
            col=col,
            value=data.get("value") or "",
            font_weight=data.get("font_weight"),
            font_style=data.get("font_style"),
            background_color=data.get("background_color"),
        )


@dataclass(frozen=True)
class PendingWrite:
    """
    An in-flight write for one coordinate; lives from issuance until the
    backend answers. A clear is a pending write of a blank cell.
    """
    cell: Cell
    version: int

    @property
    def coordinate(self) -> Coordinate:
        return self.cell.coordinate


def column_label(col: int) -> str:
    """Spreadsheet column letters: 0 -> A, 25 -> Z, 26 -> AA."""
    if col < 0:
        raise ValueError(f"Column index must be non-negative, got {col}.")
    label = ""
    while col >= 0:
        label = chr(ord("A") + col % 26) + label
        col = col // 26 - 1
    return label


def cell_label(coord: Coordinate) -> str:
    """A1-style name (rows are shown 1-based)."""
    return f"{column_label(coord.col)}{coord.row + 1}"
