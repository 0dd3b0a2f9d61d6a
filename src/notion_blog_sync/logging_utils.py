from __future__ import annotations

import logging

from rich.logging import RichHandler

LOGGER_NAME = "notion_blog_sync"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send package logs to the console through rich."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level_from_string(level))
    logger.handlers = []
    logger.propagate = False

    console_handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    console_handler.setLevel(_level_from_string(level))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)
    return logger


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
