"""
Live Update Channel
===================
Push subscription delivering other clients' edits and presence events.

Why is this file needed?
------------------------
1. Near-real-time sync: Remote cell updates are merged into the cache as
   they arrive, without polling.
2. Ordering: Messages are emitted one by one on the GUI thread, so the
   session applies them strictly in arrival order.

Classes:
    UpdateChannel: Abstract channel (signals + open/close).
    WebSocketChannel: QWebSocket implementation.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QUrl, Signal, Slot
from PySide6.QtNetwork import QAbstractSocket
from PySide6.QtWebSockets import QWebSocket

from aixcel.errors import ChannelError
from aixcel.model.messages import parse_message

logger = logging.getLogger(__name__)


class UpdateChannel(QObject):
    """
    Base class for push channels. Not instantiated directly.
    Subclasses implement the `open` and `close` hooks, emit `message_received`
    with decoded messages (see model.messages) and `connection_changed` whenever the link goes up or down.
    """
    message_received = Signal(object)
    connection_changed = Signal(bool)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.sheet_id: Optional[str] = None
        self.connected = False

    def open(self, sheet_id: str) -> None:
        """Hook: start delivering messages for `sheet_id`. Subclasses must override."""
        raise NotImplementedError(f"{type(self).__name__} does not implement open()")

    def close(self) -> None:
        """Hook: stop delivering messages and report the link as down. Subclasses must override."""
        raise NotImplementedError(f"{type(self).__name__} does not implement close()")

    def _set_connected(self, connected: bool) -> None:
        if connected != self.connected:
            self.connected = connected
            self.connection_changed.emit(connected)


class WebSocketChannel(UpdateChannel):
    """
    One WebSocket subscription per sheet view. No automatic reconnect.

    Args:
        url: ws:// endpoint, usually ClientConfig.websocket_url.
    """

    def __init__(self, url: str, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.url = url
        self._socket = QWebSocket()
        self._socket.connected.connect(self._on_connected)
        self._socket.disconnected.connect(self._on_disconnected)
        self._socket.textMessageReceived.connect(self._on_text)
        self._socket.errorOccurred.connect(self._on_error)

    def open(self, sheet_id: str) -> None:
        if self._socket.state() != QAbstractSocket.SocketState.UnconnectedState:
            logger.warning(f"Channel already open for sheet '{self.sheet_id}', reopening for '{sheet_id}'.")
            self._socket.abort()
        self.sheet_id = sheet_id
        logger.info(f"Opening update channel {self.url} for sheet '{sheet_id}'")
        self._socket.open(QUrl(self.url))

    def close(self) -> None:
        if self._socket.state() != QAbstractSocket.SocketState.UnconnectedState:
            logger.info("Closing update channel")
            self._socket.close()
        self._set_connected(False)

    @Slot()
    def _on_connected(self) -> None:
        logger.info("Update channel connected")
        self._set_connected(True)

    @Slot()
    def _on_disconnected(self) -> None:
        logger.info("Update channel disconnected")
        self._set_connected(False)

    @Slot(str)
    def _on_text(self, text: str) -> None:
        message = parse_message(text)
        if message is not None:
            self.message_received.emit(message)

    @Slot(QAbstractSocket.SocketError)
    def _on_error(self, code) -> None:
        error = ChannelError(f"{self._socket.errorString()} ({code})")
        logger.warning(f"Update channel error: {error}")
        self._set_connected(False)
