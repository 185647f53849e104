"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# raised to WARNING unless network logging is requested
_NETWORK_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.websocket")

_LOG_MAX_BYTES = 1_000_000
_LOG_BACKUPS = 3


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_network: bool = False
) -> None:
    """Install console logging and, optionally, a rotating log file.

    Parameters
    ----------
    level:
        Log level name, e.g. "INFO". Unknown names fall back to INFO.
    log_path:
        File to append to. The device runs unattended for long periods, so
        the file is rotated at about 1 MB with three backups kept.
    log_network:
        Keep aiohttp's request and websocket chatter, which is useful when
        the backend or the order stream misbehaves.
    """

    logging.captureWarnings(True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=_FORMAT)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(file_handler)

    network_level = logging.NOTSET if log_network else logging.WARNING
    for name in _NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(network_level)
