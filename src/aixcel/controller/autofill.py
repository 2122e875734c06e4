"""
Autofill Planning
Turns a fill-handle drag (selection bounds + release target) into the cells to write.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, List, Optional

from aixcel.model.cells import Cell, CellRange, Coordinate
from aixcel.model.sequences import generate

logger = logging.getLogger(__name__)


class FillDirection(StrEnum):
    RIGHT = "right"
    DOWN = "down"
    LEFT = "left"
    UP = "up"


@dataclass(frozen=True)
class FillPlan:
    direction: FillDirection
    cells: List[Cell]
    covered: CellRange  # original range plus the filled cells


def fill_direction(cell_range: CellRange, target: Coordinate) -> Optional[FillDirection]:
    """Right wins over down, down over left, left over up. None if the target is inside the range."""
    if target.col > cell_range.right:
        return FillDirection.RIGHT
    if target.row > cell_range.bottom:
        return FillDirection.DOWN
    if target.col < cell_range.left:
        return FillDirection.LEFT
    if target.row < cell_range.top:
        return FillDirection.UP
    return None


def plan_fill(
    cell_range: CellRange,
    target: Coordinate,
    cell_of: Callable[[Coordinate], Optional[Cell]],
) -> Optional[FillPlan]:
    """
    Compute the autofill of `cell_range` towards `target`.

    Each row (filling sideways) or column (filling vertically) of the range is
    fed to the sequence engine on its own. Filling left or up feeds the values
    in reverse, so the series continues away from the range. Target cells keep
    their formatting; only the value is replaced.

    Args:
        cell_range: Bounds of the current selection.
        target: Cell the fill handle was released on.
        cell_of: Cache lookup (None for empty cells).
    """
    direction = fill_direction(cell_range, target)
    if direction is None:
        return None

    def value_at(row: int, col: int) -> str:
        cell = cell_of(Coordinate(row, col))
        return cell.value if cell is not None else ""

    def filled(row: int, col: int, value: str) -> Cell:
        existing = cell_of(Coordinate(row, col)) or Cell(row, col)
        return existing.merged({"value": value})

    cells: List[Cell] = []
    r = cell_range

    if direction == FillDirection.RIGHT:
        count = target.col - r.right
        for row in range(r.top, r.bottom + 1):
            values = generate([value_at(row, c) for c in range(r.left, r.right + 1)], count)
            cells += [filled(row, r.right + 1 + k, v) for k, v in enumerate(values)]
        covered = CellRange(r.top, r.left, r.bottom, target.col)

    elif direction == FillDirection.DOWN:
        count = target.row - r.bottom
        for col in range(r.left, r.right + 1):
            values = generate([value_at(row, col) for row in range(r.top, r.bottom + 1)], count)
            cells += [filled(r.bottom + 1 + k, col, v) for k, v in enumerate(values)]
        covered = CellRange(r.top, r.left, target.row, r.right)

    elif direction == FillDirection.LEFT:
        count = r.left - target.col
        for row in range(r.top, r.bottom + 1):
            values = generate([value_at(row, c) for c in range(r.right, r.left - 1, -1)], count)
            cells += [filled(row, r.left - 1 - k, v) for k, v in enumerate(values)]
        covered = CellRange(r.top, target.col, r.bottom, r.right)

    else:
        count = r.top - target.row
        for col in range(r.left, r.right + 1):
            values = generate([value_at(row, col) for row in range(r.bottom, r.top - 1, -1)], count)
            cells += [filled(r.top - 1 - k, col, v) for k, v in enumerate(values)]
        covered = CellRange(target.row, r.left, r.bottom, r.right)

    logger.debug(f"Fill {direction} by {count}: {len(cells)} cells")
    return FillPlan(direction=direction, cells=cells, covered=covered)
