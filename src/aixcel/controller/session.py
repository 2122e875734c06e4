"""
Sheet Session (Cell Cache & Sync Coordinator)
=============================================
Client-side cache of one sheet, kept in step with the backend and the push channel.

Why is this file needed?
------------------------
1. Local truth: The grid paints from this cache. Only non-blank cells are
   stored; a coordinate that is not in the cache is empty.
2. Reconciliation: Local writes are sent to the backend and land in the
   cache only when the backend confirms them. Failed writes leave the cache
   untouched and raise a transient error message instead.
3. Collaboration: Pushed updates from other clients are merged field by
   field in arrival order. Push always wins over what was there before.

Lifecycle:
    session = SheetSession("default", backend, channel)
    session.open()    # snapshot + push subscription
    ...
    session.close()   # drop cache; late completions are ignored

Completions are applied one at a time on the GUI thread, in whatever order
the backend finishes them. By default an earlier write that completes after
a later one (or after a push) still overwrites the cache; set
`SessionSettings.drop_stale_completions` to discard such completions.

Signals:
    cells_changed(object): list[Coordinate] that changed, or None after a reset.
    error_changed(str): Current error message ('' when cleared).
    loading_changed(bool): Snapshot request in flight.
    connection_changed(bool): Push channel up/down.
    users_changed(object): list[str] of connected collaborators.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from aixcel.config import ERROR_TIMEOUT_MS
from aixcel.controller.backend import CallResult, PendingCall, SheetBackend
from aixcel.controller.channel import UpdateChannel
from aixcel.model.cells import Cell, Coordinate, PendingWrite
from aixcel.model.messages import CellUpdated, PushMessage, UserJoined, UserLeft

logger = logging.getLogger(__name__)


@dataclass
class SessionSettings:
    error_timeout_ms: int = ERROR_TIMEOUT_MS
    drop_stale_completions: bool = False


class SheetSession(QObject):
    cells_changed = Signal(object)
    error_changed = Signal(str)
    loading_changed = Signal(bool)
    connection_changed = Signal(bool)
    users_changed = Signal(object)

    def __init__(
        self,
        sheet_id: str,
        backend: SheetBackend,
        channel: Optional[UpdateChannel] = None,
        settings: Optional[SessionSettings] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.sheet_id = sheet_id
        self.backend = backend
        self.channel = channel
        self.settings = settings or SessionSettings()

        self._cells: Dict[Coordinate, Cell] = {}
        self._pending: Dict[Coordinate, PendingWrite] = {}
        self._versions: Dict[Coordinate, int] = {}
        self._push_buffer: List[PushMessage] = []
        self._users: List[str] = []

        self._error = ""
        self._loading = False
        self._connected = False
        self._closed = False

        self._error_timer = QTimer(self)
        self._error_timer.setSingleShot(True)
        self._error_timer.timeout.connect(self.clear_error)

        if self.channel is not None:
            self.channel.message_received.connect(self._on_push)
            self.channel.connection_changed.connect(self._on_connection_changed)

    # ==========================================
    # QUERIES
    # ==========================================

    def cell(self, coord: Coordinate) -> Optional[Cell]:
        return self._cells.get(coord)

    def value(self, coord: Coordinate) -> str:
        cell = self._cells.get(coord)
        return cell.value if cell is not None else ""

    def cells(self) -> Dict[Coordinate, Cell]:
        return dict(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    @property
    def error(self) -> str:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def users(self) -> List[str]:
        return list(self._users)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, coord: Coordinate) -> bool:
        return coord in self._pending

    # ==========================================
    # LIFECYCLE
    # ==========================================

    def open(self) -> PendingCall:
        """Fetch the snapshot and subscribe to pushes for this sheet."""
        logger.info(f"Opening session for sheet '{self.sheet_id}'")
        self._closed = False
        self._set_loading(True)
        call = self.backend.read_cells(self.sheet_id)
        call.on_finished(self._on_snapshot)
        if self.channel is not None:
            self.channel.open(self.sheet_id)
        return call

    def close(self) -> None:
        """Tear the session down. Completions that arrive afterwards are ignored."""
        if self._closed:
            return
        logger.info(f"Closing session for sheet '{self.sheet_id}'")
        self._closed = True
        if self.channel is not None:
            self.channel.close()
        self._error_timer.stop()
        self._cells.clear()
        self._pending.clear()
        self._versions.clear()
        self._push_buffer.clear()
        self._set_users([])
        self._set_loading(False)
        self.cells_changed.emit(None)

    def _on_snapshot(self, result: CallResult) -> None:
        if self._closed:
            return
        if result.ok:
            self._cells = {c.coordinate: c for c in result.value if not c.is_blank}
            logger.info(f"Loaded {len(self._cells)} cells for sheet '{self.sheet_id}'")
        else:
            self.report_error(f"Failed to load cells: {result.error}")

        self._set_loading(False)
        self.cells_changed.emit(None)

        # Pushes that raced the snapshot, in arrival order
        buffered, self._push_buffer = self._push_buffer, []
        for message in buffered:
            self.apply_message(message)

    # ==========================================
    # LOCAL WRITES
    # ==========================================

    def set_cell(
        self,
        row: int,
        col: int,
        value: Optional[str],
        font_weight: Optional[str] = None,
        font_style: Optional[str] = None,
        background_color: Optional[str] = None,
    ) -> PendingCall:
        """
        Write one cell. Arguments left as None keep the cached value.
        The cache changes only when the backend confirms.
        """
        coord = Coordinate(row, col)
        existing = self._cells.get(coord) or Cell(row, col)
        changes = {
            "value": value,
            "font_weight": font_weight,
            "font_style": font_style,
            "background_color": background_color,
        }
        cell = existing.merged({k: v for k, v in changes.items() if v is not None})

        writes = self._issue([cell])
        call = self.backend.write_cell(self.sheet_id, cell)
        call.on_finished(lambda result: self._on_write_done(writes, result, "Failed to update cell"))
        return call

    def set_cells_bulk(self, cells: Iterable[Cell]) -> PendingCall:
        """All-or-nothing: on success every cell is stored exactly as given, on failure none."""
        batch = list(cells)
        writes = self._issue(batch)
        call = self.backend.write_cells_bulk(self.sheet_id, batch)
        call.on_finished(lambda result: self._on_write_done(writes, result, "Failed to update cells"))
        return call

    def clear_cells(self, coords: Iterable[Coordinate]) -> PendingCall:
        """Empty the given cells. Entries leave the cache once the backend confirms."""
        unique = list(dict.fromkeys(coords))
        writes = self._issue([Cell(c.row, c.col) for c in unique])
        call = self.backend.clear_cells_bulk(self.sheet_id, unique)
        call.on_finished(lambda result: self._on_write_done(writes, result, "Failed to clear cells"))
        return call

    def evaluate(self, expression: str) -> PendingCall:
        call = self.backend.evaluate_formula(self.sheet_id, expression)
        call.on_finished(lambda result: self._on_evaluated(result))
        return call

    def _on_evaluated(self, result: CallResult) -> None:
        if not self._closed and not result.ok:
            self.report_error(f"Failed to evaluate formula: {result.error}")

    def _bump_version(self, coord: Coordinate) -> int:
        version = self._versions.get(coord, 0) + 1
        self._versions[coord] = version
        return version

    def _issue(self, cells: List[Cell]) -> List[PendingWrite]:
        writes = []
        for cell in cells:
            write = PendingWrite(cell=cell, version=self._bump_version(cell.coordinate))
            self._pending[cell.coordinate] = write
            writes.append(write)
        return writes

    def _on_write_done(self, writes: List[PendingWrite], result: CallResult, what: str) -> None:
        if self._closed:
            logger.debug(f"Ignoring completion of {len(writes)} write(s) after close")
            return

        for write in writes:
            if self._pending.get(write.coordinate) is write:
                del self._pending[write.coordinate]

        if not result.ok:
            self.report_error(f"{what}: {result.error}")
            return

        changed = [w.coordinate for w in writes if self._commit(w)]
        if changed:
            self.cells_changed.emit(changed)

    def _commit(self, write: PendingWrite) -> bool:
        coord = write.coordinate
        if self.settings.drop_stale_completions and self._versions.get(coord, 0) > write.version:
            logger.debug(f"Dropping stale completion for {coord} (v{write.version})")
            return False
        self._store(write.cell)
        return True

    def _store(self, cell: Cell) -> None:
        if cell.is_blank:
            self._cells.pop(cell.coordinate, None)
        else:
            self._cells[cell.coordinate] = cell

    # ==========================================
    # REMOTE UPDATES
    # ==========================================

    @Slot(object)
    def _on_push(self, message: PushMessage) -> None:
        if self._closed:
            return
        if self._loading:
            self._push_buffer.append(message)
            return
        self.apply_message(message)

    def apply_message(self, message: PushMessage) -> None:
        """Merge one pushed message. Cell updates overwrite only the fields they carry."""
        if isinstance(message, CellUpdated):
            if message.sheet is not None and message.sheet != self.sheet_id:
                logger.debug(f"Ignoring update for sheet '{message.sheet}'")
                return
            coord = message.coordinate
            existing = self._cells.get(coord) or Cell(coord.row, coord.col)
            self._store(existing.merged(message.changes))
            self._bump_version(coord)
            logger.debug(f"Merged push for {coord} from {message.user_id}: {sorted(message.changes)}")
            self.cells_changed.emit([coord])

        elif isinstance(message, UserJoined):
            if message.user_id not in self._users:
                self._set_users(self._users + [message.user_id])

        elif isinstance(message, UserLeft):
            if message.user_id in self._users:
                self._set_users([u for u in self._users if u != message.user_id])

        else:
            logger.warning(f"Unknown push message: {message!r}")

    @Slot(bool)
    def _on_connection_changed(self, connected: bool) -> None:
        self._connected = connected
        if not connected:
            self._set_users([])
        self.connection_changed.emit(connected)

    def _set_users(self, users: List[str]) -> None:
        if users != self._users:
            self._users = users
            self.users_changed.emit(list(users))

    def _set_loading(self, loading: bool) -> None:
        if loading != self._loading:
            self._loading = loading
            self.loading_changed.emit(loading)

    # ==========================================
    # ERRORS
    # ==========================================

    def report_error(self, message: str) -> None:
        """Show a transient message; it clears itself after `error_timeout_ms`."""
        logger.warning(message)
        self._error = message
        self.error_changed.emit(message)
        self._error_timer.start(self.settings.error_timeout_ms)

    @Slot()
    def clear_error(self) -> None:
        self._error_timer.stop()
        if self._error:
            self._error = ""
            self.error_changed.emit("")
