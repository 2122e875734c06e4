"""
Grid View Widget
================
Virtualized, unbounded cell grid painted with QPainter.

Why is this file needed?
------------------------
1. Rendering: Only the cells of the current viewport (plus a small pad) are
   painted; the grid has no fixed size and the scroll range grows as the
   user scrolls towards its end.
2. Input: Mouse, keyboard and context-menu events are translated into
   GridController calls. The widget itself never changes the selection or
   writes cells.
3. Editing: A QLineEdit overlay is positioned over the cell being edited.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QEvent, QObject, QPoint, QRect, Qt
from PySide6.QtGui import QAction, QColor, QFont, QGuiApplication, QKeySequence, QPainter, QPen
from PySide6.QtWidgets import QAbstractScrollArea, QLineEdit, QMenu, QWidget

from aixcel.config import HEADER_HEIGHT, HEADER_WIDTH, RENDER_PAD, SCROLL_SLACK
from aixcel.controller.grid_controller import GridController
from aixcel.model.cells import Cell, CellRange, Coordinate, column_label
from aixcel.model.selection import Direction
from aixcel.model.viewport import cell_rect, coordinate_at

logger = logging.getLogger(__name__)

FILL_HANDLE_SIZE = 6

GRID_LINE_COLOR = QColor("#d0d0d0")
HEADER_BG_COLOR = QColor("#f3f3f3")
HEADER_ACTIVE_COLOR = QColor("#dde6f5")
SELECTION_COLOR = QColor(26, 115, 232, 40)
PRIMARY_BORDER_COLOR = QColor("#1a73e8")

_ARROWS = {
    Qt.Key.Key_Up: Direction.UP,
    Qt.Key.Key_Down: Direction.DOWN,
    Qt.Key.Key_Left: Direction.LEFT,
    Qt.Key.Key_Right: Direction.RIGHT,
}


class GridView(QAbstractScrollArea):
    def __init__(self, controller: GridController, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._editor: Optional[QLineEdit] = None
        self.controller = controller
        self.session = controller.session
        self._fill_preview: Optional[CellRange] = None

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.viewport().setMouseTracking(True)
        self.horizontalScrollBar().setSingleStep(controller.col_width)
        self.verticalScrollBar().setSingleStep(controller.row_height)

        # --- In-place editor ---
        self._editor = QLineEdit(self.viewport())
        self._editor.setFrame(False)
        self._editor.hide()
        self._editor.returnPressed.connect(self._commit_editor)
        self._editor.editingFinished.connect(self._commit_editor)
        self._editor.installEventFilter(self)

        # --- CONNECTIONS ---
        controller.selection_changed.connect(self._on_selection_changed)
        controller.viewport_changed.connect(lambda _vp: self._update_scroll_ranges())
        controller.fill_preview_changed.connect(self._on_fill_preview)
        controller.edit_requested.connect(self._show_editor)
        controller.edit_finished.connect(self._hide_editor)
        self.session.cells_changed.connect(lambda _coords: self.viewport().update())

        self._sync_geometry()

    # ==========================================
    # GEOMETRY
    # ==========================================

    def _cell_area_size(self) -> tuple[int, int]:
        vp = self.viewport()
        return max(0, vp.width() - HEADER_WIDTH), max(0, vp.height() - HEADER_HEIGHT)

    def _scroll(self) -> tuple[int, int]:
        return self.horizontalScrollBar().value(), self.verticalScrollBar().value()

    def _sync_geometry(self) -> None:
        width, height = self._cell_area_size()
        scroll_left, scroll_top = self._scroll()
        self.controller.set_geometry(width, height, scroll_left, scroll_top)
        self._update_scroll_ranges()
        self._place_editor()
        self.viewport().update()

    def _update_scroll_ranges(self) -> None:
        """Keep the scroll range SCROLL_SLACK cells past the viewport so the grid never ends."""
        vp = self.controller.viewport
        width, height = self._cell_area_size()
        rows = vp.end_row + SCROLL_SLACK
        cols = vp.end_col + SCROLL_SLACK
        self.verticalScrollBar().setRange(0, max(0, rows * self.controller.row_height - height))
        self.horizontalScrollBar().setRange(0, max(0, cols * self.controller.col_width - width))
        self.verticalScrollBar().setPageStep(height)
        self.horizontalScrollBar().setPageStep(width)

    def _coordinate_at(self, pos: QPoint) -> Optional[Coordinate]:
        scroll_left, scroll_top = self._scroll()
        return coordinate_at(
            pos.x() - HEADER_WIDTH, pos.y() - HEADER_HEIGHT,
            scroll_left, scroll_top, self.controller.row_height, self.controller.col_width,
        )

    def _cell_qrect(self, coord: Coordinate) -> QRect:
        scroll_left, scroll_top = self._scroll()
        x, y, w, h = cell_rect(coord, scroll_left, scroll_top,
                               self.controller.row_height, self.controller.col_width)
        return QRect(int(x) + HEADER_WIDTH, int(y) + HEADER_HEIGHT, int(w), int(h))

    def _range_qrect(self, cell_range: CellRange) -> QRect:
        return self._cell_qrect(cell_range.top_left).united(self._cell_qrect(cell_range.bottom_right))

    def _fill_handle_rect(self) -> Optional[QRect]:
        bounds = self.controller.selection.bounds()
        if bounds is None:
            return None
        corner = self._range_qrect(bounds).bottomRight()
        half = FILL_HANDLE_SIZE // 2
        return QRect(corner.x() - half, corner.y() - half, FILL_HANDLE_SIZE, FILL_HANDLE_SIZE)

    def ensure_visible(self, coord: Coordinate) -> None:
        width, height = self._cell_area_size()
        rh, cw = self.controller.row_height, self.controller.col_width
        vbar, hbar = self.verticalScrollBar(), self.horizontalScrollBar()

        top, left = coord.row * rh, coord.col * cw
        if top < vbar.value():
            vbar.setValue(top)
        elif top + rh > vbar.value() + height:
            vbar.setMaximum(max(vbar.maximum(), top + rh - height))
            vbar.setValue(top + rh - height)
        if left < hbar.value():
            hbar.setValue(left)
        elif left + cw > hbar.value() + width:
            hbar.setMaximum(max(hbar.maximum(), left + cw - width))
            hbar.setValue(left + cw - width)

    # --- Qt overrides ---

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self._sync_geometry()

    def scrollContentsBy(self, dx: int, dy: int) -> None:
        self._sync_geometry()

    # ==========================================
    # PAINTING
    # ==========================================

    def paintEvent(self, event) -> None:
        painter = QPainter(self.viewport())
        rendered = self.controller.viewport.padded(RENDER_PAD)
        selection = self.controller.selection
        base_font = painter.font()

        # 1. Cells
        for row in rendered.rows:
            for col in rendered.cols:
                coord = Coordinate(row, col)
                rect = self._cell_qrect(coord)
                if rect.right() < HEADER_WIDTH or rect.bottom() < HEADER_HEIGHT:
                    continue
                self._paint_cell(painter, rect, self.session.cell(coord), coord in selection, base_font)

        # 2. Selection decorations
        if selection.primary is not None:
            painter.setPen(QPen(PRIMARY_BORDER_COLOR, 2))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(self._cell_qrect(selection.primary).adjusted(1, 1, -1, -1))

            handle = self._fill_handle_rect()
            if handle is not None:
                painter.fillRect(handle, PRIMARY_BORDER_COLOR)

        if self._fill_preview is not None:
            painter.setPen(QPen(PRIMARY_BORDER_COLOR, 1, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(self._range_qrect(self._fill_preview))

        # 3. Headers on top of everything
        self._paint_headers(painter, rendered, base_font)
        painter.end()

    def _paint_cell(self, painter: QPainter, rect: QRect, cell: Optional[Cell],
                    selected: bool, base_font: QFont) -> None:
        if cell is not None and cell.background_color:
            color = QColor(cell.background_color)
            if color.isValid():
                painter.fillRect(rect, color)
        if selected:
            painter.fillRect(rect, SELECTION_COLOR)

        painter.setPen(GRID_LINE_COLOR)
        painter.drawRect(rect)

        if cell is None or not cell.value:
            return
        font = QFont(base_font)
        font.setBold(cell.font_weight == "bold")
        font.setItalic(cell.font_style == "italic")
        painter.setFont(font)
        painter.setPen(Qt.GlobalColor.black)
        painter.drawText(rect.adjusted(4, 0, -4, 0),
                         Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft, cell.value)
        painter.setFont(base_font)

    def _paint_headers(self, painter: QPainter, rendered, base_font: QFont) -> None:
        vp = self.viewport()
        bounds = self.controller.selection.bounds()
        painter.setFont(base_font)

        painter.fillRect(QRect(0, 0, vp.width(), HEADER_HEIGHT), HEADER_BG_COLOR)
        painter.fillRect(QRect(0, 0, HEADER_WIDTH, vp.height()), HEADER_BG_COLOR)

        for col in rendered.cols:
            cell = self._cell_qrect(Coordinate(rendered.start_row, col))
            rect = QRect(cell.left(), 0, cell.width(), HEADER_HEIGHT)
            if rect.right() < HEADER_WIDTH:
                continue
            if bounds is not None and bounds.left <= col <= bounds.right:
                painter.fillRect(rect, HEADER_ACTIVE_COLOR)
            painter.setPen(GRID_LINE_COLOR)
            painter.drawRect(rect)
            painter.setPen(Qt.GlobalColor.black)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, column_label(col))

        for row in rendered.rows:
            cell = self._cell_qrect(Coordinate(row, rendered.start_col))
            rect = QRect(0, cell.top(), HEADER_WIDTH, cell.height())
            if rect.bottom() < HEADER_HEIGHT:
                continue
            if bounds is not None and bounds.top <= row <= bounds.bottom:
                painter.fillRect(rect, HEADER_ACTIVE_COLOR)
            painter.setPen(GRID_LINE_COLOR)
            painter.drawRect(rect)
            painter.setPen(Qt.GlobalColor.black)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, str(row + 1))

        # Corner
        painter.fillRect(QRect(0, 0, HEADER_WIDTH, HEADER_HEIGHT), HEADER_BG_COLOR)

    # ==========================================
    # MOUSE
    # ==========================================

    def mousePressEvent(self, event) -> None:
        pos = event.position().toPoint()
        if pos.x() < HEADER_WIDTH or pos.y() < HEADER_HEIGHT:
            return
        if self.controller.editing is not None:
            self._commit_editor()

        coord = self._coordinate_at(pos)
        if coord is None:
            return

        if event.button() == Qt.MouseButton.LeftButton:
            handle = self._fill_handle_rect()
            if handle is not None and handle.adjusted(-2, -2, 2, 2).contains(pos):
                self.controller.begin_fill()
                return
            mods = event.modifiers()
            ctrl = bool(mods & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier))
            shift = bool(mods & Qt.KeyboardModifier.ShiftModifier)
            self.controller.mouse_press(coord, shift=shift, ctrl=ctrl)

        elif event.button() == Qt.MouseButton.RightButton:
            # Right-click outside the selection selects the clicked cell first
            if coord not in self.controller.selection:
                self.controller.mouse_press(coord)
                self.controller.mouse_release()

    def mouseMoveEvent(self, event) -> None:
        pos = event.position().toPoint()
        handle = self._fill_handle_rect()
        over_handle = handle is not None and handle.adjusted(-2, -2, 2, 2).contains(pos)
        self.viewport().setCursor(Qt.CursorShape.CrossCursor if over_handle else Qt.CursorShape.ArrowCursor)

        if not event.buttons() & Qt.MouseButton.LeftButton:
            return
        coord = self._coordinate_at(pos)
        if coord is not None:
            self.controller.mouse_move(coord)

    def mouseReleaseEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self.controller.mouse_release()

    def mouseDoubleClickEvent(self, event) -> None:
        coord = self._coordinate_at(event.position().toPoint())
        if coord is not None and event.button() == Qt.MouseButton.LeftButton:
            self.controller.double_click(coord)

    def contextMenuEvent(self, event) -> None:
        menu = QMenu(self)
        actions = [
            ("Copy", self.copy_selection),
            ("Clear Contents", self.controller.delete_selection),
            ("Clear Selection", self.controller.clear_selection),
            ("Toggle Bold", self.controller.toggle_bold),
            ("Toggle Italic", self.controller.toggle_italic),
        ]
        for text, slot in actions:
            action = QAction(text, menu)
            action.triggered.connect(lambda _checked=False, fn=slot: fn())
            menu.addAction(action)
        menu.exec(event.globalPos())

    # ==========================================
    # KEYBOARD
    # ==========================================

    def keyPressEvent(self, event) -> None:
        key = event.key()
        mods = event.modifiers()

        if key in _ARROWS:
            self.controller.move(_ARROWS[key], extend=bool(mods & Qt.KeyboardModifier.ShiftModifier))
            if self.controller.selection.primary is not None:
                self.ensure_visible(self.controller.selection.primary)
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self.controller.begin_edit()
        elif key == Qt.Key.Key_Escape:
            self.controller.escape()
        elif key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.controller.delete_selection()
        elif event.matches(QKeySequence.StandardKey.SelectAll):
            self.controller.select_all()
        elif event.matches(QKeySequence.StandardKey.Copy):
            self.copy_selection()
        elif self._is_typing(event):
            self.controller.begin_edit(event.text())
        else:
            super().keyPressEvent(event)

    @staticmethod
    def _is_typing(event) -> bool:
        text = event.text()
        mods = event.modifiers()
        if mods & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier):
            return False
        return len(text) == 1 and text.isprintable()

    def copy_selection(self) -> None:
        QGuiApplication.clipboard().setText(self.controller.copy_text())

    # ==========================================
    # EDITOR
    # ==========================================

    def _show_editor(self, coord: Coordinate, text: str) -> None:
        cell = self.session.cell(coord)
        font = QFont(self.font())
        font.setBold(cell is not None and cell.font_weight == "bold")
        font.setItalic(cell is not None and cell.font_style == "italic")
        self._editor.setFont(font)
        self._editor.setText(text)
        self.ensure_visible(coord)
        self._place_editor()
        self._editor.show()
        self._editor.setFocus()
        self._editor.end(False)

    def _place_editor(self) -> None:
        coord = self.controller.editing
        if coord is not None:
            self._editor.setGeometry(self._cell_qrect(coord).adjusted(1, 1, -1, -1))

    def _commit_editor(self) -> None:
        if self.controller.editing is not None:
            self.controller.commit_edit(self._editor.text())

    def _hide_editor(self) -> None:
        self._editor.hide()
        self.setFocus()
        self.viewport().update()

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if watched is self._editor and event.type() == QEvent.Type.KeyPress \
                and event.key() == Qt.Key.Key_Escape:
            self.controller.cancel_edit()
            return True
        return super().eventFilter(watched, event)

    # ==========================================
    # SLOTS
    # ==========================================

    def _on_selection_changed(self, _selection) -> None:
        self.viewport().update()

    def _on_fill_preview(self, preview: Optional[CellRange]) -> None:
        self._fill_preview = preview
        self.viewport().update()
