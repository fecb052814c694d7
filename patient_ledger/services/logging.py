"""Logging for the ledger server and the close-month CLI.

Every record goes to stdout and to a log file. The level comes from the
LOG_LEVEL setting (default INFO).
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level(name: str | None = None) -> int:
    """Resolve a level name such as "warning" to its logging constant.

    Args:
        name: Level name; falls back to the LOG_LEVEL env var when omitted

    Returns:
        Logging level constant, INFO for unknown names
    """
    level = logging.getLevelName((name or os.getenv("LOG_LEVEL", "INFO")).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_server_logging(log_file: str = "logs/server.log", level: str | None = None) -> None:
    """
    Route the root logger to stdout and ``log_file``.

    Calling it again replaces the handlers from the previous call.

    Args:
        log_file: Path to log file; parent directories are created
        level: Level name; LOG_LEVEL env var when omitted
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_level = get_log_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


__all__ = ["setup_server_logging", "get_log_level"]
