"""
Configuration & Constants
=========================
This module serves as the central registry for grid geometry and connection
settings.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (row heights, timeouts, URLs)
   scattered throughout the code.
2. Deployment: It reads environment overrides so the same build can talk to a
   local or a remote backend.

Exports:
    ROW_HEIGHT, COL_WIDTH, HEADER_HEIGHT, HEADER_WIDTH (int): Cell geometry in px.
    VIEWPORT_BUFFER (int): Extra rows/cols materialized beyond the visible area.
    ERROR_TIMEOUT_MS (int): Lifetime of a transient error message.
    ClientConfig: Connection settings resolved from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

# Grid geometry (pixels)
ROW_HEIGHT: int = 25
COL_WIDTH: int = 80
HEADER_HEIGHT: int = 30
HEADER_WIDTH: int = 50

# Virtualization
VIEWPORT_BUFFER: int = 5
RENDER_PAD: int = 10
# Scrollable extent beyond the materialized window, so the scrollbar never hits its end
SCROLL_SLACK: int = 100

# Select-all safety cap (not a real sheet limit)
SELECT_ALL_MIN_ROWS: int = 100
SELECT_ALL_MIN_COLS: int = 26

ERROR_TIMEOUT_MS: int = 5000
PREVIEW_CHARS: int = 20

DEFAULT_SHEET: str = "default"
DEFAULT_BACKEND_URL: str = "http://127.0.0.1:6889"
DEFAULT_REQUEST_TIMEOUT: float = 10.0


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ClientConfig:
    """Connection settings for one client process."""
    backend_url: str = DEFAULT_BACKEND_URL
    sheet: str = DEFAULT_SHEET
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    drop_stale_completions: bool = False

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from AIXCEL_* environment variables."""
        timeout_raw = os.environ.get("AIXCEL_REQUEST_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_REQUEST_TIMEOUT
        except ValueError:
            raise ValueError(f"AIXCEL_REQUEST_TIMEOUT must be a number, got '{timeout_raw}'.")

        return cls(
            backend_url=os.environ.get("AIXCEL_BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/"),
            sheet=os.environ.get("AIXCEL_SHEET", DEFAULT_SHEET),
            request_timeout=timeout,
            drop_stale_completions=_env_flag("AIXCEL_DROP_STALE"),
        )

    @property
    def websocket_url(self) -> str:
        """Push channel endpoint derived from the HTTP base URL."""
        return self.backend_url.replace("http", "ws", 1) + "/ws"
