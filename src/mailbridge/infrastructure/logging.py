"""Loguru sink configuration."""

from __future__ import annotations

import sys

from loguru import logger

from mailbridge.infrastructure.settings import get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str | None = None, sink=sys.stderr) -> int:
    """Replace loguru's default handler with the project sink. Returns the handler id."""
    logger.remove()
    return logger.add(sink, format=LOG_FORMAT, level=(level or get_settings().log_level).upper())
