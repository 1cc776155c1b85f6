from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .constants import LOGGER_NAME

_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(level: int = logging.INFO) -> logging.Logger:
    """Return the shared logger for action runs."""

    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def attach_log_file(logger: logging.Logger, path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
    logger.addHandler(handler)
    return handler


def log_section(logger: logging.Logger, header: str, content: Optional[str] = None) -> None:
    logger.info(header)
    if content:
        for line in str(content).splitlines():
            logger.info("  %s", line)
