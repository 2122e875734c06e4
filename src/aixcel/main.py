"""
Application Initialization
==========================
This module wires the client together and starts the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Resolves the configuration (environment, then command-line flags).
2. Instantiates the HTTP backend and the push channel factory.
3. Instantiates the Main Window (View) and opens the first sheet.
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from PySide6.QtCore import QSettings

from aixcel.application import create_app
from aixcel.config import ClientConfig
from aixcel.controller.channel import WebSocketChannel
from aixcel.controller.http_backend import HttpSheetBackend
from aixcel.logging_config import setup_logging
from aixcel.view.main_window import LAST_SHEET_KEY, MainWindow

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="aixcel", description="Collaborative spreadsheet grid client.")
    parser.add_argument("--backend-url", help="Base URL of the sheet service (default: $AIXCEL_BACKEND_URL).")
    parser.add_argument("--sheet", help="Sheet to open (default: last opened, then $AIXCEL_SHEET).")
    parser.add_argument("--debug", action="store_true", help="Verbose logging.")
    parser.add_argument("--log-file", help="Mirror the log into this file.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # 2. Resolve configuration; flags override the environment
    config = ClientConfig.from_env()
    if args.backend_url:
        config.backend_url = args.backend_url.rstrip("/")

    # 3. Create the Qt Application (also fixes the QSettings location)
    app = create_app([sys.argv[0]])

    sheet = args.sheet or QSettings().value(LAST_SHEET_KEY, "", type=str) or config.sheet
    logger.info(f"Backend {config.backend_url}, sheet '{sheet}'")

    # 4. Boundary adapters
    backend = HttpSheetBackend(config.backend_url, timeout=config.request_timeout)

    def channel_factory() -> WebSocketChannel:
        return WebSocketChannel(config.websocket_url)

    # 5. Initialize the Main Window and open the first sheet
    window = MainWindow(config, backend, channel_factory)
    window.open_sheet(sheet)
    window.show()

    # 6. Start Event Loop
    exit_code = app.exec()
    backend.shutdown()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
