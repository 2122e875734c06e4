"""
HTTP Sheet Backend
==================
SheetBackend implementation talking JSON over HTTP with `requests`.

Endpoints (snake_case fields, the sheet name travels in the body or query):
    GET    /cells?sheet=<id>      -> [cell, ...]
    POST   /cells                 <- cell + sheet
    POST   /cells/bulk            <- [cell + sheet, ...]
    POST   /cells/clear           <- {"cells": [{"row", "col", "sheet"}, ...]}
    POST   /evaluate              <- {"expr", "sheet"}  -> plain text
    GET    /sheets                -> ["name", ...] or [{"name": ...}, ...]
    POST   /sheets                <- {"name"}
    DELETE /sheets/<name>

Every call is executed by an HttpCallWorker; the payload builders and
response parsers are plain functions so they can be checked without threads.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from aixcel.config import DEFAULT_REQUEST_TIMEOUT
from aixcel.controller.backend import PendingCall, SheetBackend
from aixcel.controller.workers import HttpCallWorker
from aixcel.errors import NetworkError
from aixcel.model.cells import Cell, Coordinate

logger = logging.getLogger(__name__)


# ==========================================
# PAYLOADS
# ==========================================

def cell_payload(sheet_id: str, cell: Cell) -> Dict[str, Any]:
    return cell.to_dict(sheet=sheet_id)


def bulk_payload(sheet_id: str, cells: Iterable[Cell]) -> List[Dict[str, Any]]:
    return [cell.to_dict(sheet=sheet_id) for cell in cells]


def clear_payload(sheet_id: str, coords: Iterable[Coordinate]) -> Dict[str, Any]:
    return {"cells": [{"row": c.row, "col": c.col, "sheet": sheet_id} for c in coords]}


def evaluate_payload(sheet_id: str, expression: str) -> Dict[str, str]:
    return {"expr": expression, "sheet": sheet_id}


def parse_cells(data: Any) -> list[Cell]:
    """Decode the /cells snapshot. Entries that are not cells are skipped."""
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of cells, got {type(data).__name__}")
    cells = []
    for item in data:
        if not isinstance(item, dict):
            logger.warning(f"Skipping snapshot entry that is not an object: {item!r}")
            continue
        try:
            cells.append(Cell.from_dict(item))
        except ValueError as e:
            logger.warning(f"Skipping snapshot entry: {e}")
    return cells


def parse_sheet_names(data: Any) -> list[str]:
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of sheets, got {type(data).__name__}")
    names = []
    for item in data:
        if isinstance(item, dict):
            item = item.get("name")
        if item:
            names.append(str(item))
    return names


class HttpSheetBackend(SheetBackend):
    """
    REST client for the sheet service.

    Args:
        base_url: e.g. 'http://127.0.0.1:6889' (no trailing path).
        timeout: Per-request timeout in seconds.
        session: Optional pre-configured requests.Session.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        # In-flight calls; the backend owns every handle until its worker is done
        self._inflight: dict[HttpCallWorker, PendingCall] = {}

    # --- Plumbing ---

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Blocking request; raises NetworkError on a non-2xx answer."""
        response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        if not response.ok:
            message = response.text.strip() or response.reason or "Request failed"
            raise NetworkError(message, status=response.status_code)
        return response

    @property
    def in_flight(self) -> int:
        """Calls whose result is not delivered yet or whose thread is still running."""
        return sum(1 for w, c in self._inflight.items() if not (c.done and w.isFinished()))

    def _prune(self, *_args) -> None:
        """Forget pairs whose call was delivered and whose thread has exited."""
        self._inflight = {
            w: c for w, c in self._inflight.items() if not (c.done and w.isFinished())
        }

    def _dispatch(self, description: str, fn: Callable[[], Any]) -> PendingCall:
        self._prune()
        call = PendingCall(description)
        worker = HttpCallWorker(description, fn)
        worker.completed.connect(call.resolve)
        call.finished.connect(self._prune)
        self._inflight[worker] = call
        logger.debug(f"Dispatching {description}")
        worker.start()
        return call

    def shutdown(self, wait_ms: Optional[int] = None) -> None:
        """
        Wait for in-flight calls and close the HTTP session.
        By default each worker gets the request timeout plus a second to finish.
        Workers still running afterwards stay referenced.
        """
        if wait_ms is None:
            wait_ms = int(self.timeout * 1000) + 1000
        for worker in list(self._inflight):
            if not worker.wait(wait_ms):
                logger.warning(f"Request '{worker.description}' still running at shutdown")
        self._inflight = {w: c for w, c in self._inflight.items() if not w.isFinished()}
        self.session.close()

    # --- Cells ---

    def read_cells(self, sheet_id: str) -> PendingCall:
        def fn():
            return parse_cells(self.request("GET", "/cells", params={"sheet": sheet_id}).json())
        return self._dispatch(f"read_cells({sheet_id})", fn)

    def write_cell(self, sheet_id: str, cell: Cell) -> PendingCall:
        payload = cell_payload(sheet_id, cell)

        def fn():
            self.request("POST", "/cells", json=payload)
        return self._dispatch(f"write_cell({sheet_id}, {cell.row}, {cell.col})", fn)

    def write_cells_bulk(self, sheet_id: str, cells: Iterable[Cell]) -> PendingCall:
        payload = bulk_payload(sheet_id, cells)

        def fn():
            self.request("POST", "/cells/bulk", json=payload)
        return self._dispatch(f"write_cells_bulk({sheet_id}, n={len(payload)})", fn)

    def clear_cells_bulk(self, sheet_id: str, coords: Iterable[Coordinate]) -> PendingCall:
        payload = clear_payload(sheet_id, coords)

        def fn():
            self.request("POST", "/cells/clear", json=payload)
        return self._dispatch(f"clear_cells_bulk({sheet_id}, n={len(payload['cells'])})", fn)

    def evaluate_formula(self, sheet_id: str, expression: str) -> PendingCall:
        payload = evaluate_payload(sheet_id, expression)

        def fn():
            return self.request("POST", "/evaluate", json=payload).text.strip()
        return self._dispatch(f"evaluate_formula({sheet_id})", fn)

    # --- Sheets ---

    def list_sheets(self) -> PendingCall:
        def fn():
            return parse_sheet_names(self.request("GET", "/sheets").json())
        return self._dispatch("list_sheets", fn)

    def create_sheet(self, name: str) -> PendingCall:
        def fn():
            self.request("POST", "/sheets", json={"name": name})
        return self._dispatch(f"create_sheet({name})", fn)

    def delete_sheet(self, name: str) -> PendingCall:
        def fn():
            self.request("DELETE", f"/sheets/{quote(name, safe='')}")
        return self._dispatch(f"delete_sheet({name})", fn)
