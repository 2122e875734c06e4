"""
test_main_window.py — MainWindow toolbar state against a fake backend.

Covers:
  - Cell label and value preview follow the primary cell
  - Bold / Italic buttons reflect the confirmed formatting of the primary cell
  - A formatting toggle shows up only once the write is confirmed
"""
from __future__ import annotations

import pytest
from PySide6.QtCore import QCoreApplication, QSettings

from aixcel.config import ClientConfig
from aixcel.model.cells import Cell, Coordinate
from aixcel.view.main_window import MainWindow

C = Coordinate


@pytest.fixture
def window(qtbot, backend, channel, tmp_path):
    QCoreApplication.setOrganizationName("aixcel-tests")
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    QSettings.setPath(QSettings.Format.IniFormat, QSettings.Scope.UserScope, str(tmp_path))

    win = MainWindow(ClientConfig(), backend, lambda: channel)
    qtbot.addWidget(win)
    win.open_sheet("default")
    backend.last("read_cells")[2].succeed([
        Cell(0, 0, "heading", font_weight="bold"),
        Cell(0, 1, "note", font_style="italic"),
    ])
    return win


class TestToolbar:
    def test_buttons_are_checkable(self, window):
        assert window.btn_bold.isCheckable()
        assert window.btn_italic.isCheckable()

    def test_label_and_preview(self, window):
        window.controller.mouse_press(C(0, 0))
        assert window.cell_label.text() == "A1"
        assert window.preview_label.text() == "heading"

    def test_buttons_follow_primary_cell(self, window):
        window.controller.mouse_press(C(0, 0))
        assert window.btn_bold.isChecked()
        assert not window.btn_italic.isChecked()

        window.controller.mouse_press(C(0, 1))
        assert not window.btn_bold.isChecked()
        assert window.btn_italic.isChecked()

        window.controller.mouse_press(C(5, 5))
        assert not window.btn_bold.isChecked()
        assert not window.btn_italic.isChecked()

    def test_empty_selection_unchecks(self, window):
        window.controller.mouse_press(C(0, 0))
        window.controller.escape()
        assert not window.btn_bold.isChecked()

    def test_toggle_waits_for_confirmation(self, window, backend):
        window.controller.mouse_press(C(0, 0))
        window.btn_bold.click()
        # Not confirmed yet: the button still shows the stored formatting
        assert window.btn_bold.isChecked()

        backend.last("write_cells_bulk")[2].succeed()
        assert not window.btn_bold.isChecked()
