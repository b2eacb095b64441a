"""Centralized logger configuration."""

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger

from figgytales.config import settings


def configure_logger(extra_sink: Optional[str] = None, level: str = "INFO") -> None:
    """Configure loguru logger once per process."""

    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True, enqueue=True)

    if extra_sink:
        logger.add(extra_sink, level=level, rotation="1 week", enqueue=True)


def configure_from_settings() -> None:
    configure_logger(settings.app.log_file, settings.app.log_level)


# Configure immediately on import for convenience.
configure_from_settings()

__all__ = ["logger", "configure_logger", "configure_from_settings"]
