"""
Modal Dialog for Sheet Management
Lists the sheets known to the backend; create, delete or pick one to open.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog, QDialogButtonBox, QHBoxLayout, QInputDialog, QLabel, QListWidget,
    QMessageBox, QPushButton, QVBoxLayout, QWidget
)

from aixcel.controller.backend import CallResult, SheetBackend

logger = logging.getLogger(__name__)


class SheetsDialog(QDialog):
    def __init__(self, backend: SheetBackend, current_sheet: str = "", parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("Sheets")
        self.resize(360, 420)
        self.backend = backend
        self.current_sheet = current_sheet
        self.selected_sheet: Optional[str] = None

        layout = QVBoxLayout(self)

        self.list_widget = QListWidget()
        self.list_widget.itemDoubleClicked.connect(lambda _item: self.accept())
        layout.addWidget(self.list_widget)

        self.status_label = QLabel("")
        layout.addWidget(self.status_label)

        row = QHBoxLayout()
        self.btn_new = QPushButton("New...")
        self.btn_new.clicked.connect(self.on_create)
        self.btn_delete = QPushButton("Delete")
        self.btn_delete.clicked.connect(self.on_delete)
        self.btn_refresh = QPushButton("Refresh")
        self.btn_refresh.clicked.connect(self.refresh)
        row.addWidget(self.btn_new)
        row.addWidget(self.btn_delete)
        row.addStretch()
        row.addWidget(self.btn_refresh)
        layout.addLayout(row)

        # Standard Buttons
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Open | QDialogButtonBox.StandardButton.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self.refresh()

    def _set_busy(self, message: str) -> None:
        self.status_label.setText(message)
        for button in (self.btn_new, self.btn_delete, self.btn_refresh):
            button.setEnabled(not message)

    def refresh(self) -> None:
        self._set_busy("Loading sheets...")
        self.backend.list_sheets().on_finished(self._on_listed)

    def _on_listed(self, result: CallResult) -> None:
        self._set_busy("")
        if not result.ok:
            self.status_label.setText(f"Could not load sheets: {result.error}")
            return
        self.list_widget.clear()
        names = list(result.value)
        if self.current_sheet and self.current_sheet not in names:
            names.insert(0, self.current_sheet)
        self.list_widget.addItems(names)
        matches = self.list_widget.findItems(self.current_sheet, Qt.MatchFlag.MatchExactly)
        if matches:
            self.list_widget.setCurrentItem(matches[0])

    def on_create(self) -> None:
        name, ok = QInputDialog.getText(self, "New Sheet", "Sheet name:")
        name = name.strip()
        if not ok or not name:
            return
        self._set_busy(f"Creating '{name}'...")
        self.backend.create_sheet(name).on_finished(lambda result: self._after_change(result, "create"))

    def on_delete(self) -> None:
        item = self.list_widget.currentItem()
        if item is None:
            return
        name = item.text()
        answer = QMessageBox.question(self, "Delete Sheet", f"Delete sheet '{name}' and all its cells?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        self._set_busy(f"Deleting '{name}'...")
        self.backend.delete_sheet(name).on_finished(lambda result: self._after_change(result, "delete"))

    def _after_change(self, result: CallResult, what: str) -> None:
        if not result.ok:
            logger.warning(f"Sheet {what} failed: {result.error}")
            self._set_busy("")
            self.status_label.setText(f"Could not {what} sheet: {result.error}")
            return
        self.refresh()

    def accept(self) -> None:
        item = self.list_widget.currentItem()
        self.selected_sheet = item.text() if item is not None else None
        super().accept()
