"""
Shared fixtures: an in-memory backend whose calls the test resolves by hand,
a push channel the test drives directly, and a session wired to both.
"""
from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from aixcel.controller.backend import PendingCall, SheetBackend
from aixcel.controller.channel import UpdateChannel
from aixcel.controller.grid_controller import GridController
from aixcel.controller.session import SessionSettings, SheetSession
from aixcel.model.cells import Cell


class FakeBackend(SheetBackend):
    """Records every call; nothing completes until the test resolves it."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, PendingCall]] = []

    def _record(self, name: str, *args) -> PendingCall:
        call = PendingCall(name)
        self.calls.append((name, args, call))
        return call

    def last(self, name: str | None = None) -> tuple[str, tuple, PendingCall]:
        matching = [c for c in self.calls if name is None or c[0] == name]
        assert matching, f"no '{name}' call recorded"
        return matching[-1]

    def read_cells(self, sheet_id):
        return self._record("read_cells", sheet_id)

    def write_cell(self, sheet_id, cell):
        return self._record("write_cell", sheet_id, cell)

    def write_cells_bulk(self, sheet_id, cells):
        return self._record("write_cells_bulk", sheet_id, list(cells))

    def clear_cells_bulk(self, sheet_id, coords):
        return self._record("clear_cells_bulk", sheet_id, list(coords))

    def evaluate_formula(self, sheet_id, expression):
        return self._record("evaluate_formula", sheet_id, expression)

    def list_sheets(self):
        return self._record("list_sheets")

    def create_sheet(self, name):
        return self._record("create_sheet", name)

    def delete_sheet(self, name):
        return self._record("delete_sheet", name)


class FakeChannel(UpdateChannel):
    def __init__(self):
        super().__init__()
        self.opened_with: list[str] = []
        self.closed = 0

    def open(self, sheet_id):
        self.sheet_id = sheet_id
        self.opened_with.append(sheet_id)

    def close(self):
        self.closed += 1
        self._set_connected(False)

    # --- test helpers ---
    def push(self, message):
        self.message_received.emit(message)

    def go_online(self):
        self._set_connected(True)


@pytest.fixture(autouse=True)
def _qt_app(qapp):
    """Every test gets the (offscreen) QApplication; QObjects and QTimer need it."""
    return qapp


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def session(backend, channel):
    """An opened session whose snapshot has already arrived (empty sheet)."""
    s = SheetSession("default", backend, channel, SessionSettings(error_timeout_ms=50))
    s.open()
    backend.last("read_cells")[2].succeed([])
    return s


@pytest.fixture
def controller(session):
    return GridController(session)


@pytest.fixture
def seed(session, backend):
    """Put cells into the cache through a confirmed bulk write."""
    def _seed(*cells: Cell) -> None:
        session.set_cells_bulk(cells)
        backend.last("write_cells_bulk")[2].succeed()
    return _seed
