"""
Grid Controller
===============
Glue between the grid widget, the selection and the sheet session.

Why is this file needed?
------------------------
1. Gestures: The widget reports raw input (cell under the mouse, modifiers,
   keys). This class maps it onto Selection transitions.
2. Intent: Edits, clears, formatting toggles, autofill and formula
   evaluation become SheetSession calls. The widget never writes cells.
3. Viewport: Every resize/scroll goes through `set_geometry()`, which
   recomputes the window of cells to paint.

Classes:
    GridController: One per sheet view, built around a SheetSession.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from PySide6.QtCore import QObject, Signal

from aixcel.config import COL_WIDTH, ROW_HEIGHT, VIEWPORT_BUFFER
from aixcel.controller.autofill import plan_fill
from aixcel.controller.backend import CallResult, PendingCall
from aixcel.controller.session import SheetSession
from aixcel.model.cells import Cell, Coordinate
from aixcel.model.selection import Direction, Selection, SelectionState
from aixcel.model.viewport import Viewport, compute_viewport

logger = logging.getLogger(__name__)


class GridController(QObject):
    selection_changed = Signal(object)      # Selection
    viewport_changed = Signal(object)       # Viewport
    fill_preview_changed = Signal(object)   # Optional[CellRange]
    edit_requested = Signal(object, str)    # Coordinate, initial editor text
    edit_finished = Signal()
    evaluation_finished = Signal(str)

    def __init__(
        self,
        session: SheetSession,
        row_height: int = ROW_HEIGHT,
        col_width: int = COL_WIDTH,
        buffer: int = VIEWPORT_BUFFER,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.session = session
        self.row_height = row_height
        self.col_width = col_width
        self.buffer = buffer

        self.selection = Selection()
        self.editing: Optional[Coordinate] = None
        self.viewport: Viewport = compute_viewport(0, 0, 0, 0, row_height, col_width, buffer)

    def _selection_updated(self) -> None:
        self.selection_changed.emit(self.selection)

    # ==========================================
    # VIEWPORT
    # ==========================================

    def set_geometry(self, width: float, height: float, scroll_left: float, scroll_top: float) -> Viewport:
        viewport = compute_viewport(
            width, height, scroll_left, scroll_top, self.row_height, self.col_width, self.buffer
        )
        if viewport != self.viewport:
            self.viewport = viewport
            self.viewport_changed.emit(viewport)
        return viewport

    # ==========================================
    # MOUSE
    # ==========================================

    def mouse_press(self, coord: Coordinate, shift: bool = False, ctrl: bool = False) -> None:
        if ctrl:
            self.selection.toggle(coord)
        elif shift:
            self.selection.extend_to(coord)
        else:
            self.selection.press(coord)
        self._selection_updated()

    def mouse_move(self, coord: Coordinate) -> None:
        if self.selection.state == SelectionState.EXTENDING:
            self.selection.fill_to(coord)
            self.fill_preview_changed.emit(self.selection.fill_preview())
            return
        if self.selection.dragging:
            self.selection.drag_to(coord)
            self._selection_updated()

    def mouse_release(self) -> Optional[PendingCall]:
        """Ends a drag. Releasing the fill handle commits the autofill."""
        was_filling = self.selection.state == SelectionState.EXTENDING
        target = self.selection.release()
        if was_filling:
            self.fill_preview_changed.emit(None)
        if target is None:
            return None
        return self.fill_to(target)

    def double_click(self, coord: Coordinate) -> None:
        self.selection.click(coord)
        self._selection_updated()
        self.begin_edit()

    def begin_fill(self) -> bool:
        """Mouse-down on the fill handle."""
        return self.selection.begin_fill()

    def fill_to(self, target: Coordinate) -> Optional[PendingCall]:
        """
        Autofill the selection towards `target` with one bulk write.
        The selection grows to cover the filled cells right away.
        """
        bounds = self.selection.bounds()
        if bounds is None:
            return None
        plan = plan_fill(bounds, target, self.session.cell)
        if plan is None:
            return None

        logger.info(f"Autofill {plan.direction}: {len(plan.cells)} cells")
        call = self.session.set_cells_bulk(plan.cells)
        self.selection.cover(plan.covered)
        self._selection_updated()
        return call

    # ==========================================
    # KEYBOARD
    # ==========================================

    def move(self, direction: Direction, extend: bool = False) -> None:
        if self.selection.primary is None:
            return
        self.selection.move(direction, extend=extend)
        self._selection_updated()

    def escape(self) -> None:
        if self.editing is not None:
            self.cancel_edit()
            return
        self.selection.clear()
        self._selection_updated()

    def select_all(self) -> None:
        self.selection.select_all(self.viewport)
        self._selection_updated()

    def clear_selection(self) -> None:
        self.selection.clear()
        self._selection_updated()

    def delete_selection(self) -> Optional[PendingCall]:
        """Delete/Backspace: bulk clear of every selected cell."""
        coords = self.selection.cells()
        if not coords:
            return None
        return self.session.clear_cells(coords)

    def copy_text(self) -> str:
        """Tab-separated text of the selection's bounding rectangle."""
        bounds = self.selection.bounds()
        if bounds is None:
            return ""
        if len(bounds) == 1:
            return self.session.value(bounds.top_left)
        rows = []
        for row in range(bounds.top, bounds.bottom + 1):
            rows.append("\t".join(
                self.session.value(Coordinate(row, col)) for col in range(bounds.left, bounds.right + 1)
            ))
        return "\n".join(rows)

    # ==========================================
    # EDITING
    # ==========================================

    def begin_edit(self, initial_text: Optional[str] = None) -> bool:
        """
        Open the editor on the primary cell.
        Enter passes no text (editor shows the current value); a printable key passes that character.
        """
        coord = self.selection.primary
        if coord is None:
            return False
        text = self.session.value(coord) if initial_text is None else initial_text
        self.editing = coord
        self.edit_requested.emit(coord, text)
        return True

    def commit_edit(self, text: str) -> Optional[PendingCall]:
        """Write the editor text; the cell keeps its formatting."""
        coord = self.editing
        if coord is None:
            return None
        self.editing = None
        self.edit_finished.emit()
        return self.session.set_cell(coord.row, coord.col, text)

    def cancel_edit(self) -> None:
        if self.editing is not None:
            self.editing = None
            self.edit_finished.emit()

    # ==========================================
    # FORMATTING
    # ==========================================

    def _apply_format(self, changes_for: Callable[[Cell], Dict[str, Optional[str]]]) -> Optional[PendingCall]:
        coords = self.selection.cells()
        if not coords:
            return None
        cells = []
        for coord in coords:
            existing = self.session.cell(coord) or Cell(coord.row, coord.col)
            cells.append(existing.merged(changes_for(existing)))
        return self.session.set_cells_bulk(cells)

    def toggle_bold(self) -> Optional[PendingCall]:
        return self._apply_format(
            lambda c: {"font_weight": "normal" if c.font_weight == "bold" else "bold"})

    def toggle_italic(self) -> Optional[PendingCall]:
        return self._apply_format(
            lambda c: {"font_style": "normal" if c.font_style == "italic" else "italic"})

    def set_background(self, color: str) -> Optional[PendingCall]:
        return self._apply_format(lambda c: {"background_color": color})

    # ==========================================
    # FORMULAS
    # ==========================================

    def evaluate(self, expression: str, write_result: bool = False) -> Optional[PendingCall]:
        """
        Evaluate `expression` on the backend. With `write_result` the answer is
        written into the cell that was primary when the request was made.
        """
        expression = expression.strip()
        if not expression:
            return None
        target = self.selection.primary
        call = self.session.evaluate(expression)
        call.on_finished(lambda result: self._on_evaluated(result, target, write_result))
        return call

    def _on_evaluated(self, result: CallResult, target: Optional[Coordinate], write_result: bool) -> None:
        if not result.ok:
            return
        text = str(result.value)
        self.evaluation_finished.emit(text)
        if write_result and target is not None:
            self.session.set_cell(target.row, target.col, text)
