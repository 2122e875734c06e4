"""
Main Application Window
=======================
The primary GUI container: toolbar, formula bar, error banner and the grid.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the client.
2. Routing: It connects global actions (Sheet -> Open, Format -> Bold, the
   formula box) to the GridController of the sheet currently shown.
3. Lifecycle: It owns the SheetSession of the open sheet and tears it down
   when another sheet is opened or the window closes.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QSettings
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QCheckBox, QColorDialog, QFrame, QHBoxLayout, QLabel, QLineEdit, QMainWindow,
    QMessageBox, QPushButton, QToolButton, QVBoxLayout, QWidget
)

from aixcel.config import PREVIEW_CHARS, ClientConfig
from aixcel.controller.backend import SheetBackend
from aixcel.controller.channel import UpdateChannel
from aixcel.controller.grid_controller import GridController
from aixcel.controller.session import SessionSettings, SheetSession
from aixcel.model.cells import cell_label
from aixcel.view.dialogs.sheets_dialog import SheetsDialog
from aixcel.view.widgets.grid_view import GridView

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "AIxcel"
LAST_SHEET_KEY = "session/last_sheet"


class MainWindow(QMainWindow):
    def __init__(
        self,
        config: ClientConfig,
        backend: SheetBackend,
        channel_factory: Callable[[], UpdateChannel],
    ) -> None:
        super().__init__()
        self.config = config
        self.backend = backend
        self.channel_factory = channel_factory

        self.session: Optional[SheetSession] = None
        self.controller: Optional[GridController] = None
        self.grid: Optional[GridView] = None

        self.resize(1200, 800)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        self.main_layout = QVBoxLayout(main_widget)
        self.main_layout.setContentsMargins(0, 0, 0, 0)
        self.main_layout.setSpacing(0)

        self.main_layout.addWidget(self._build_toolbar())
        self.main_layout.addWidget(self._build_formula_bar())
        self.main_layout.addWidget(self._build_error_banner())

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

    # ==========================================
    # LAYOUT
    # ==========================================

    def _build_toolbar(self) -> QWidget:
        bar = QFrame()
        bar.setFrameShape(QFrame.Shape.StyledPanel)
        layout = QHBoxLayout(bar)
        layout.setContentsMargins(8, 4, 8, 4)

        self.cell_label = QLabel("")
        self.cell_label.setMinimumWidth(60)
        self.cell_label.setStyleSheet("font-weight: bold;")
        self.preview_label = QLabel("")
        self.preview_label.setStyleSheet("color: #555;")

        self.status_label = QLabel("Disconnected")

        layout.addWidget(self.cell_label)
        layout.addWidget(self.preview_label)
        layout.addStretch()
        layout.addWidget(self.status_label)
        return bar

    def _build_formula_bar(self) -> QWidget:
        bar = QWidget()
        layout = QHBoxLayout(bar)
        layout.setContentsMargins(8, 4, 8, 4)

        self.formula_edit = QLineEdit()
        self.formula_edit.setPlaceholderText("Formula, e.g. SUM(A1:A10)")
        self.formula_edit.returnPressed.connect(self.on_evaluate)

        self.btn_evaluate = QPushButton("Evaluate")
        self.btn_evaluate.clicked.connect(self.on_evaluate)

        self.chk_write_result = QCheckBox("Write into cell")

        self.result_label = QLabel("")
        self.result_label.setMinimumWidth(120)

        self.btn_bold = QToolButton()
        self.btn_bold.setText("B")
        self.btn_bold.setStyleSheet("font-weight: bold;")
        self.btn_bold.setCheckable(True)
        self.btn_bold.clicked.connect(self.on_toggle_bold)

        self.btn_italic = QToolButton()
        self.btn_italic.setText("I")
        self.btn_italic.setStyleSheet("font-style: italic;")
        self.btn_italic.setCheckable(True)
        self.btn_italic.clicked.connect(self.on_toggle_italic)

        self.btn_color = QToolButton()
        self.btn_color.setText("Fill")
        self.btn_color.clicked.connect(self.on_pick_background)

        layout.addWidget(QLabel("fx"))
        layout.addWidget(self.formula_edit, stretch=1)
        layout.addWidget(self.btn_evaluate)
        layout.addWidget(self.chk_write_result)
        layout.addWidget(self.result_label)
        layout.addSpacing(16)
        layout.addWidget(self.btn_bold)
        layout.addWidget(self.btn_italic)
        layout.addWidget(self.btn_color)
        return bar

    def _build_error_banner(self) -> QWidget:
        self.error_banner = QFrame()
        self.error_banner.setStyleSheet("background: #fdecea; color: #b3261e;")
        layout = QHBoxLayout(self.error_banner)
        layout.setContentsMargins(8, 4, 8, 4)

        self.error_label = QLabel("")
        btn_dismiss = QToolButton()
        btn_dismiss.setText("x")
        btn_dismiss.clicked.connect(self.on_dismiss_error)

        layout.addWidget(self.error_label, stretch=1)
        layout.addWidget(btn_dismiss)
        self.error_banner.hide()
        return self.error_banner

    def _create_actions(self) -> None:
        # Sheet Actions
        self.act_open = QAction("Sheets...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_manage_sheets)

        self.act_reload = QAction("Reload", self)
        self.act_reload.setShortcut(QKeySequence.StandardKey.Refresh)
        self.act_reload.triggered.connect(self.on_reload)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # Format Actions
        self.act_bold = QAction("Bold", self)
        self.act_bold.setShortcut("Ctrl+B")
        self.act_bold.triggered.connect(self.on_toggle_bold)

        self.act_italic = QAction("Italic", self)
        self.act_italic.setShortcut("Ctrl+I")
        self.act_italic.triggered.connect(self.on_toggle_italic)

        self.act_background = QAction("Background Colour...", self)
        self.act_background.triggered.connect(self.on_pick_background)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        sheet_menu = menu_bar.addMenu("&Sheet")
        sheet_menu.addAction(self.act_open)
        sheet_menu.addAction(self.act_reload)
        sheet_menu.addSeparator()
        sheet_menu.addAction(self.act_exit)

        format_menu = menu_bar.addMenu("&Format")
        format_menu.addAction(self.act_bold)
        format_menu.addAction(self.act_italic)
        format_menu.addAction(self.act_background)

    # ==========================================
    # SHEET LIFECYCLE
    # ==========================================

    def open_sheet(self, sheet_id: str) -> None:
        """Replace the current sheet view with a fresh session for `sheet_id`."""
        self._close_sheet()
        logger.info(f"Opening sheet '{sheet_id}'")

        settings = SessionSettings(drop_stale_completions=self.config.drop_stale_completions)
        self.session = SheetSession(sheet_id, self.backend, self.channel_factory(), settings, parent=self)
        self.controller = GridController(self.session, parent=self)
        self.grid = GridView(self.controller)
        self.main_layout.addWidget(self.grid, stretch=1)

        # --- CONNECTIONS ---
        self.session.error_changed.connect(self.on_error_changed)
        self.session.connection_changed.connect(lambda _c: self.update_status())
        self.session.users_changed.connect(lambda _u: self.update_status())
        self.session.loading_changed.connect(lambda _l: self.update_status())
        self.session.cells_changed.connect(lambda _coords: self.update_cell_info())
        self.controller.selection_changed.connect(lambda _s: self.update_cell_info())
        self.controller.evaluation_finished.connect(self.on_evaluation_finished)

        self.session.open()
        QSettings().setValue(LAST_SHEET_KEY, sheet_id)

        self.update_window_title()
        self.update_status()
        self.update_cell_info()
        self.grid.setFocus()

    def _close_sheet(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session.channel.deleteLater()
            self.session.deleteLater()
        if self.grid is not None:
            self.main_layout.removeWidget(self.grid)
            self.grid.deleteLater()
        if self.controller is not None:
            self.controller.deleteLater()
        self.session = self.controller = self.grid = None

    def closeEvent(self, event) -> None:
        self._close_sheet()
        super().closeEvent(event)

    # --- HELPER METHODS ---

    def update_window_title(self) -> None:
        sheet = self.session.sheet_id if self.session is not None else "-"
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{sheet}]")

    def update_status(self) -> None:
        if self.session is None:
            self.status_label.setText("Disconnected")
            return
        if self.session.loading:
            text = "Loading..."
        elif self.session.connected:
            text = f"Connected ({len(self.session.users)} users)"
        else:
            text = "Disconnected"
        self.status_label.setText(text)

    def update_cell_info(self) -> None:
        """A1 label, value preview and bold/italic state of the primary cell."""
        if self.controller is None or self.controller.selection.primary is None:
            self.cell_label.setText("")
            self.preview_label.setText("")
            self.btn_bold.setChecked(False)
            self.btn_italic.setChecked(False)
            return
        primary = self.controller.selection.primary
        value = self.session.value(primary)
        preview = value if len(value) <= PREVIEW_CHARS else value[:PREVIEW_CHARS] + "..."
        self.cell_label.setText(cell_label(primary))
        self.preview_label.setText(preview)

        # Buttons show the confirmed formatting of the primary cell
        cell = self.session.cell(primary)
        self.btn_bold.setChecked(cell is not None and cell.font_weight == "bold")
        self.btn_italic.setChecked(cell is not None and cell.font_style == "italic")

    # ==========================================
    # SLOTS
    # ==========================================

    def on_error_changed(self, message: str) -> None:
        self.error_label.setText(message)
        self.error_banner.setVisible(bool(message))

    def on_dismiss_error(self) -> None:
        if self.session is not None:
            self.session.clear_error()
        self.error_banner.hide()

    def on_toggle_bold(self) -> None:
        if self.controller is not None:
            self.controller.toggle_bold()
            self.update_cell_info()

    def on_toggle_italic(self) -> None:
        if self.controller is not None:
            self.controller.toggle_italic()
            self.update_cell_info()

    def on_pick_background(self) -> None:
        if self.controller is None or not self.controller.selection.cells():
            return
        color = QColorDialog.getColor(parent=self, title="Background Colour")
        if color.isValid():
            self.controller.set_background(color.name())

    def on_evaluate(self) -> None:
        if self.controller is None:
            return
        expression = self.formula_edit.text().strip()
        if not expression:
            return

        write = self.chk_write_result.isChecked() and self.controller.selection.primary is not None
        if write:
            target = cell_label(self.controller.selection.primary)
            answer = QMessageBox.question(
                self, "Evaluate", f"Write the result of '{expression}' into {target}?"
            )
            write = answer == QMessageBox.StandardButton.Yes

        self.result_label.setText("...")
        self.controller.evaluate(expression, write_result=write)

    def on_evaluation_finished(self, text: str) -> None:
        self.result_label.setText(f"= {text}")

    def on_manage_sheets(self) -> None:
        current = self.session.sheet_id if self.session is not None else ""
        dialog = SheetsDialog(self.backend, current, self)
        if dialog.exec() and dialog.selected_sheet and dialog.selected_sheet != current:
            self.open_sheet(dialog.selected_sheet)

    def on_reload(self) -> None:
        if self.session is not None:
            self.open_sheet(self.session.sheet_id)
