"""Logging for storegraph scans and commands.

Everything logs under the ``storegraph`` logger hierarchy. Command output
owns stdout, so the console handler writes to stderr.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, TextIO

_LOGGER_NAME = "storegraph"


class _ComponentFormatter(logging.Formatter):
    """Render records as ``storegraph[component] level: message``."""

    def format(self, record: logging.LogRecord) -> str:
        component = record.name[len(_LOGGER_NAME) + 1 :] if record.name != _LOGGER_NAME else ""
        prefix = f"{_LOGGER_NAME}[{component}]" if component else _LOGGER_NAME
        return f"{prefix} {record.levelname.lower()}: {record.getMessage()}"


def get_logger(name: str | None = None) -> logging.Logger:
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def progress_logger(logger: logging.Logger) -> Callable[[int, int, str], None]:
    """Return a scan progress callback that logs ``[done/total] message`` at DEBUG."""

    def _log(completed: int, total: int, message: str) -> None:
        logger.debug("[%d/%d] %s", completed, total, message)

    return _log


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install the console handler (and an optional file sink) on the root storegraph logger.

    ``verbose`` lowers the level to DEBUG, which surfaces scan progress,
    cache hits and skipped files. Calling this again replaces the handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(_ComponentFormatter())
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger", "progress_logger"]
