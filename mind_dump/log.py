"""Package logger."""

from __future__ import annotations

import logging

logger = logging.getLogger("mind_dump")


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Attach a stderr handler to the package logger (CLI use)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(level)
