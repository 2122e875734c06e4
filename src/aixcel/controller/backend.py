"""
Sheet Backend Boundary
======================
Everything the grid needs from the outside world, expressed as asynchronous calls.

Why is this file needed?
------------------------
1. Decoupling: The session and controller never talk HTTP directly; tests
   plug in an in-memory backend and resolve calls by hand.
2. Explicit completions: Every call returns a PendingCall. Its `finished`
   signal fires exactly once, on the GUI thread, with a CallResult holding
   either the payload or a NetworkError. Errors never cross the event loop
   as exceptions.

Classes:
    CallResult: Payload or error of one finished call.
    PendingCall: Handle of an in-flight call.
    SheetBackend: Abstract boundary implemented by HttpSheetBackend.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from aixcel.errors import NetworkError
from aixcel.model.cells import Cell, Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallResult:
    value: Any = None
    error: Optional[NetworkError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PendingCall(QObject):
    """Handle of one in-flight backend call. Resolves once; later resolutions are ignored."""
    finished = Signal(object)  # CallResult

    def __init__(self, description: str = "", parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.description = description
        self._result: Optional[CallResult] = None

    @property
    def done(self) -> bool:
        return self._result is not None

    @Slot(object)
    def resolve(self, result: CallResult) -> None:
        if self._result is not None:
            logger.debug(f"Ignoring second completion of '{self.description}'.")
            return
        self._result = result
        self.finished.emit(result)

    def succeed(self, value: Any = None) -> None:
        self.resolve(CallResult(value=value))

    def fail(self, error: NetworkError | str) -> None:
        if not isinstance(error, NetworkError):
            error = NetworkError(str(error))
        self.resolve(CallResult(error=error))

    def on_finished(self, callback: Callable[[CallResult], None]) -> None:
        """Run `callback` with the result; immediately if the call already finished."""
        if self._result is not None:
            callback(self._result)
        else:
            self.finished.connect(callback)


class SheetBackend(ABC):
    """
    Abstract collaborator that stores cells, evaluates formulas and manages sheets.
    All methods return immediately with a PendingCall.
    """

    @abstractmethod
    def read_cells(self, sheet_id: str) -> PendingCall:
        """Snapshot of all non-blank cells; resolves with list[Cell]."""
        pass

    @abstractmethod
    def write_cell(self, sheet_id: str, cell: Cell) -> PendingCall:
        pass

    @abstractmethod
    def write_cells_bulk(self, sheet_id: str, cells: Iterable[Cell]) -> PendingCall:
        """All-or-nothing write of many cells."""
        pass

    @abstractmethod
    def clear_cells_bulk(self, sheet_id: str, coords: Iterable[Coordinate]) -> PendingCall:
        pass

    @abstractmethod
    def evaluate_formula(self, sheet_id: str, expression: str) -> PendingCall:
        """Resolves with the result rendered as text."""
        pass

    @abstractmethod
    def list_sheets(self) -> PendingCall:
        """Resolves with list[str]."""
        pass

    @abstractmethod
    def create_sheet(self, name: str) -> PendingCall:
        pass

    @abstractmethod
    def delete_sheet(self, name: str) -> PendingCall:
        pass
