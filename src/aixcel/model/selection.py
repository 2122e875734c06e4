"""
Selection State Machine
=======================
Tracks which cells are selected and how gestures change that set.

Why is this file needed?
------------------------
1. One source of truth: The grid widget, the toolbar (A1 label and preview)
   and the formatting actions all read the same selection.
2. Gesture semantics: Click, ctrl-click, shift-click, mouse drag, keyboard
   moves and the fill-handle drag each transform the set in a specific way;
   keeping them here makes them testable without a GUI.

Invariant: `primary is None` if and only if the selection is empty.
Rectangles are stored as individual coordinates (interactive sizes only).
"""
from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Dict, Iterable, Iterator, Optional

from aixcel.config import SELECT_ALL_MIN_COLS, SELECT_ALL_MIN_ROWS
from aixcel.model.cells import CellRange, Coordinate
from aixcel.model.viewport import Viewport

logger = logging.getLogger(__name__)


class SelectionState(Enum):
    EMPTY = auto()
    SINGLE = auto()
    RANGE = auto()
    EXTENDING = auto()  # fill-handle drag in progress


class Direction(Enum):
    UP = (-1, 0)
    DOWN = (1, 0)
    LEFT = (0, -1)
    RIGHT = (0, 1)


class Selection:
    """
    Ordered set of selected coordinates with a primary (cursor) cell and an
    optional keyboard anchor.
    """

    def __init__(self) -> None:
        # dict keeps insertion order; values unused
        self._cells: Dict[Coordinate, None] = {}
        self.primary: Optional[Coordinate] = None
        self.anchor: Optional[Coordinate] = None

        self._press_origin: Optional[Coordinate] = None
        self.dragging: bool = False
        self.filling: bool = False
        self.fill_target: Optional[Coordinate] = None

    # --- Queries ---

    @property
    def state(self) -> SelectionState:
        if self.filling:
            return SelectionState.EXTENDING
        if not self._cells:
            return SelectionState.EMPTY
        if len(self._cells) == 1:
            return SelectionState.SINGLE
        return SelectionState.RANGE

    def cells(self) -> list[Coordinate]:
        return list(self._cells)

    def contains(self, coord: Coordinate) -> bool:
        return coord in self._cells

    def bounds(self) -> Optional[CellRange]:
        return CellRange.bounding(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Coordinate]:
        return iter(list(self._cells))

    def __contains__(self, coord: object) -> bool:
        return coord in self._cells

    # --- Internals ---

    def _replace(self, coords: Iterable[Coordinate], primary: Optional[Coordinate]) -> None:
        self._cells = dict.fromkeys(coords)
        self.primary = primary if primary in self._cells else next(iter(self._cells), None)

    # --- Click gestures ---

    def click(self, coord: Coordinate) -> None:
        """Plain click: select exactly this cell."""
        self._replace([coord], coord)
        self.anchor = coord

    def toggle(self, coord: Coordinate) -> None:
        """Ctrl/Cmd-click: add or remove one cell."""
        if coord in self._cells:
            del self._cells[coord]
            if self.primary == coord:
                self.primary = next(iter(self._cells), None)
            if self.anchor == coord:
                self.anchor = self.primary
        else:
            self._cells[coord] = None
            self.primary = coord
            self.anchor = coord

    def extend_to(self, coord: Coordinate) -> None:
        """Shift-click: rectangle from the primary cell to `coord`; primary unchanged."""
        if self.primary is None:
            self.click(coord)
            return
        self._replace(CellRange.spanning(self.primary, coord), self.primary)

    # --- Mouse drag (range selection) ---

    def press(self, coord: Coordinate) -> None:
        """Mouse-down without modifiers starts a range drag."""
        self.click(coord)
        self._press_origin = coord
        self.dragging = True

    def drag_to(self, coord: Coordinate) -> None:
        """Hover while a drag is active; no-op otherwise."""
        if self.filling:
            self.fill_to(coord)
            return
        if not self.dragging or self._press_origin is None:
            return
        self._replace(CellRange.spanning(self._press_origin, coord), self._press_origin)

    def release(self) -> Optional[Coordinate]:
        """
        Mouse-up. Ends a range drag or a fill drag.

        Returns:
            The fill target if a fill-handle drag was in progress, else None.
        """
        self.dragging = False
        self._press_origin = None
        if not self.filling:
            return None

        target = self.fill_target
        self.filling = False
        self.fill_target = None
        return target

    # --- Fill handle ---

    def begin_fill(self) -> bool:
        """Mouse-down on the fill handle. Needs a non-empty selection."""
        if not self._cells:
            return False
        self.dragging = False
        self.filling = True
        self.fill_target = None
        return True

    def fill_to(self, coord: Coordinate) -> None:
        if self.filling:
            self.fill_target = coord

    def fill_preview(self) -> Optional[CellRange]:
        """Rectangle the fill would cover (selection bounds grown to the target)."""
        bounds = self.bounds()
        if not self.filling or self.fill_target is None or bounds is None:
            return None
        return bounds.union(CellRange.spanning(self.fill_target, self.fill_target))

    # --- Keyboard ---

    def move(self, direction: Direction, extend: bool = False) -> None:
        """
        Arrow key. Moves the primary one step (clamped at row/col 0).

        With `extend` (shift+arrow) the selection becomes the rectangle from
        the anchor to the new primary; the anchor is set to the old primary on
        first use. Without it the selection collapses and the anchor is cleared.
        """
        if self.primary is None:
            return
        d_row, d_col = direction.value
        new_primary = self.primary.shifted(d_row, d_col)

        if extend:
            if self.anchor is None:
                self.anchor = self.primary
            self._replace(CellRange.spanning(self.anchor, new_primary), new_primary)
        else:
            self._replace([new_primary], new_primary)
            self.anchor = None

    def clear(self) -> None:
        self._cells = {}
        self.primary = None
        self.anchor = None
        self._press_origin = None
        self.dragging = False
        self.filling = False
        self.fill_target = None

    def select_all(self, viewport: Viewport) -> None:
        """Rectangle from A1 to at least 100 rows x 26 columns (further if the viewport reaches further)."""
        bottom = max(viewport.end_row, SELECT_ALL_MIN_ROWS - 1)
        right = max(viewport.end_col, SELECT_ALL_MIN_COLS - 1)
        origin = Coordinate(0, 0)
        self._replace(CellRange(0, 0, bottom, right), origin)
        self.anchor = origin
        logger.debug(f"Selected all: {bottom + 1} rows x {right + 1} cols.")

    def cover(self, cell_range: CellRange) -> None:
        """Select a whole rectangle, keeping the primary if it lies inside."""
        primary = self.primary if self.primary is not None and cell_range.contains(self.primary) \
            else cell_range.top_left
        self._replace(cell_range, primary)
        if self.anchor is None or not cell_range.contains(self.anchor):
            self.anchor = primary
