"""
logger.py
---------
Logging for db-import runs.

Every module logs under ``dbimport.<module>``, so one run produces a single
stream covering schema creation, batch lifecycle and per-entry import
results. Generated SQL has its own ``dbimport.sql`` channel, silent at
the default level unless ``LOG_SQL=1``; statement parameters are only
ever logged there. Setting ``LOG_FILE`` also appends the stream, with
source locations, to that file.
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from config import CONFIG, get_log_level

_ROOT_LOGGER_NAME = "dbimport"
_SQL_CHANNEL = "sql"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


def _configure_root_logger() -> None:
    """One-time setup of the root 'dbimport' logger and its handlers."""
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(get_log_level())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )
    root.addHandler(console_handler)

    if os.getenv("LOG_SQL") == "1":
        logging.getLogger(f"{_ROOT_LOGGER_NAME}.{_SQL_CHANNEL}").setLevel(logging.DEBUG)

    if CONFIG.run.log_file:
        log_path = Path(CONFIG.run.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT)
            )
            root.addHandler(file_handler)
        except OSError as exc:
            root.warning("Could not create log file '%s': %s", log_path, exc)


_configure_root_logger()


def get_logger(name: str) -> logging.Logger:
    """
    Return a child logger scoped to the given name.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance under the 'dbimport' hierarchy.

    Example::

        log = get_logger(__name__)
        log.info("Operation started")
        log.error("Fatal error", exc_info=True)
    """
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


def get_sql_logger() -> logging.Logger:
    """Return the logger used for generated SQL statements."""
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{_SQL_CHANNEL}")
