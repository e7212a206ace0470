"""Logging setup for Launch Sync.

Every module logs through a child of the "launchsync" logger. Console output
goes to stderr so command output on stdout stays machine-readable; the
optional debug log in the data directory is size-rotated.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["logger", "setup_logging"]

logger = logging.getLogger("launchsync")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_LOG_BYTES = 1_000_000
LOG_BACKUP_COUNT = 2


def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Attach the console (and file) handlers to the "launchsync" logger.

    Calling it again only changes the console level, so repeated CLI
    invocations in one process do not stack handlers.

    Args:
        level: Console log level.
        log_file: Optional debug log; it always records DEBUG and above.
            A log file that cannot be opened is reported and skipped.
    """
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False

    console = next((h for h in logger.handlers if getattr(h, "_launchsync_console", False)), None)
    if console is not None:
        console.setLevel(level)
        return

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console._launchsync_console = True  # type: ignore[attr-defined]
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is None:
        return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
    except OSError as e:
        logger.warning("File logging disabled, cannot open %s: %s", log_file, e)
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
