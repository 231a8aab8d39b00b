"""
Logging configuration for unitsync.

Console output goes to stderr so it never mixes with anything a caller pipes
from stdout. A daily rotating log file can be added with log_dir, which is
handy when the watcher runs unattended next to the consuming application.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Handler that flushes after every emit for immediate visibility."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    backup_count: int = 7,
) -> logging.Logger:
    """
    Set up stderr logging, plus an optional daily log file.

    Args:
        level: Logging level (default: INFO)
        log_dir: Directory for log files; no file logging when None
        backup_count: Number of daily backup files to keep

    Returns:
        Configured "unitsync" logger
    """
    logger = logging.getLogger("unitsync")
    logger.setLevel(level)

    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    )
    has_file_handler = any(isinstance(h, FlushingHandler) for h in logger.handlers)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if not has_console_handler:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None and not has_file_handler:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"unitsync-{datetime.now().strftime('%Y-%m-%d')}.log"

        file_handler = FlushingHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info(f"Log file: {log_file}")

    return logger

