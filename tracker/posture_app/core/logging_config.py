"""Logging configuration using loguru."""
from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, level=level.upper(), rotation="5 MB", retention="7 days", backtrace=False, diagnose=False)
