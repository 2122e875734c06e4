"""
Background Workers (Threading)
==============================
QThread subclass that runs one blocking HTTP call off the GUI thread.

Why is this file needed?
------------------------
1. Responsiveness: `requests` blocks. Running it on the main thread would
   freeze scrolling and typing while the backend answers.
2. Single-threaded state: The worker never touches the cache. It only emits
   `completed` with a CallResult; connected to a PendingCall slot, that
   emission is queued onto the GUI thread where the session applies it.

Classes:
    HttpCallWorker: Runs a request callable and reports payload or error.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests
from PySide6.QtCore import QObject, QThread, Signal

from aixcel.controller.backend import CallResult
from aixcel.errors import NetworkError

logger = logging.getLogger(__name__)


class HttpCallWorker(QThread):
    completed = Signal(object)  # CallResult

    def __init__(self, description: str, request: Callable[[], Any], parent: Optional[QObject] = None):
        super().__init__(parent)
        self.description = description
        self.request = request

    def run(self) -> None:
        try:
            result = CallResult(value=self.request())
        except NetworkError as e:
            logger.warning(f"{self.description} failed: {e}")
            result = CallResult(error=e)
        except requests.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning(f"{self.description} failed: {e}")
            result = CallResult(error=NetworkError(str(e), status=status))
        except ValueError as e:
            # Body that is not the JSON we expected
            logger.warning(f"{self.description} returned a malformed body: {e}")
            result = CallResult(error=NetworkError(f"Malformed response: {e}"))

        self.completed.emit(result)
