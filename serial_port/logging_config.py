"""Logging configuration for SerialPort."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file: Optional[str] = None, level: str = "WARNING", console: bool = False) -> None:
    """
    Configure the root logger for one run of the tool.

    Standard output carries transferred data, so console logging goes to stderr.
    With neither a log file nor console output, records are discarded.

    Args:
        log_file: Path of a log file to append to, or None.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        console: If True, also log to stderr.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = []
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    if not handlers:
        root_logger.addHandler(logging.NullHandler())

    logging.debug(f"Logging initialized: level={level}, file={log_file}")
