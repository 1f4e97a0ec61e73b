"""Centralized logging configuration using Loguru.

Usage:
    from nonl.utils.logging import logger
    logger.debug("Rebuilt index for {}", document_id)

Environment Variables:
    NONL_LOG_LEVEL: TRACE|DEBUG|INFO|WARNING|ERROR (default: WARNING)
    NONL_LOG_FILE: path to a log file (optional, always DEBUG)
"""

from __future__ import annotations

import os
import sys

from loguru import logger

# Remove default handler
logger.remove()

_log_level = os.environ.get("NONL_LOG_LEVEL", "WARNING").upper()
_log_file = os.environ.get("NONL_LOG_FILE")

_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.add(
    sys.stderr,
    level=_log_level,
    format=_human_format,
    colorize=None,
)

if _log_file:
    logger.add(
        _log_file,
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )


__all__ = ["logger"]
