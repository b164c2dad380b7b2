"""Plain-text error log written next to the updater.

Each record is one line::

    2024/3/7 9:05:12 W: Unable to open zip file D:\\updates\\__auto_updater\\app.zip

``E`` marks critical errors, ``W`` warnings. The file is recreated on every
run and stays open for the lifetime of the process.
"""

import logging
import os
from pathlib import Path

from auto_updater.update.update_config import ERROR_LOG_FILE_NAME

logger = logging.getLogger(__name__)


def severity_letter(levelno: int) -> str:
    return "E" if levelno >= logging.ERROR else "W"


class ErrorLogFormatter(logging.Formatter):
    """Formats records as ``YYYY/M/D H:Min:S <E|W>: <message>``."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            # Keep one line per event
            last = record.exc_text.strip().splitlines()[-1]
            message = f"{message} ({last})"
        return f"{self.formatTime(record)} {severity_letter(record.levelno)}: {message}"

    def formatTime(self, record, datefmt=None) -> str:
        t = self.converter(record.created)
        return (
            f"{t.tm_year}/{t.tm_mon}/{t.tm_mday} "
            f"{t.tm_hour}:{t.tm_min}:{t.tm_sec}"
        )


def open_error_log(directory=None, level: int = logging.WARNING) -> logging.FileHandler:
    """Create (truncating) the error log file and return its handler.

    Raises OSError if the file cannot be created.
    """
    log_dir = Path(directory) if directory is not None else Path(os.getcwd())
    handler = logging.FileHandler(
        str(log_dir / ERROR_LOG_FILE_NAME), mode="w", encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(ErrorLogFormatter())
    return handler


def attach_error_log(handler: logging.Handler, target: logging.Logger | None = None):
    """Route warnings and errors from every module into ``handler``."""
    (target or logging.getLogger()).addHandler(handler)
    logger.debug("Error log attached: %s", getattr(handler, "baseFilename", handler))
