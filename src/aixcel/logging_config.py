"""
Logging Configuration
Sets up the 'aixcel' logger for the grid client.
"""
import logging
import sys
from typing import Optional

# Third-party loggers that are too chatty at DEBUG (one line per HTTP request)
NOISY_LOGGERS = ("urllib3", "requests")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the package logger for the 'aixcel' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to mirror the console log into.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("aixcel")
    logger.setLevel(level)

    # Re-opening the main window calls this again; avoid duplicate lines
    if logger.hasHandlers():
        logger.handlers.clear()

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # 1. Console Handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 2. File Handler (Optional), appended so sessions of one day stay together
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 3. Keep HTTP plumbing at WARNING unless we are debugging the transport itself
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.info(f"Logging initialized (level={logging.getLevelName(level)}).")
    return logger
