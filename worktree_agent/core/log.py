"""Logging configuration using loguru.

Every module logs through ``loguru.logger`` directly; nothing in the stack
logs via stdlib ``logging``, so no bridge is installed.  All output goes to
stderr so that stdout stays clean for status-line and JSON consumers.
"""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: str = "WARNING") -> None:
    """Replace loguru's default sink with a stderr sink at ``level``.

    Call once per CLI invocation, before touching the store or probes.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    logger.debug("Logging initialised (level={})", level)
