"""Logging setup for the OverTimer process.

Modules log through ``logging.getLogger(__name__)``; this only decides
where those records go.  Handlers are named so repeated calls don't
stack duplicates.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "overtimer"
LOG_DIR = Path.home() / "Library" / "Application Support" / "OverTimer" / "logs"


def configure_logging(
        level: int | str = logging.INFO,
        log_dir: Path | None = None,
        console: bool = False,
        max_bytes: int = 1024 * 1024,
        backup_count: int = 3,
) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    fmt = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    file_handler_name = f"{ROOT_LOGGER}:file"
    file_handler = next((h for h in logger.handlers if h.get_name() == file_handler_name), None)
    if file_handler is None:
        log_dir = log_dir or LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_dir / f"{ROOT_LOGGER}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(fmt)
        file_handler.set_name(file_handler_name)
        logger.addHandler(file_handler)
    file_handler.setLevel(level)

    console_handler_name = f"{ROOT_LOGGER}:console"
    if console and not any(h.get_name() == console_handler_name for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(fmt)
        console_handler.set_name(console_handler_name)
        logger.addHandler(console_handler)
    for handler in logger.handlers:
        if handler.get_name() == console_handler_name:
            handler.setLevel(level)

    return logger
