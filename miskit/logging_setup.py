"""Logging configuration for the miskit command line.

Normal runs print one concise line per event. ``--debug`` switches the
miskit loggers to DEBUG and adds the thread name, since pooled submissions
interleave rows from several workers.
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s:%(lineno)d %(message)s"

HANDLER_NAME = "miskit-cli"

# Held at WARNING or above, even under --debug
QUIET_LOGGERS = ("chardet", "openpyxl")


def _resolve_level(level_name: Optional[str]) -> int:
    if not level_name:
        return logging.INFO
    return getattr(logging, level_name.strip().upper(), logging.INFO)


def _cli_handler(root_logger: logging.Logger) -> logging.Handler:
    for handler in root_logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    root_logger.addHandler(handler)
    return handler


def configure_logging(level_name: Optional[str] = None, debug: bool = False) -> logging.Handler:
    """Install (or reconfigure) the stderr handler used by the CLI.

    Args:
        level_name: Level name such as "INFO"; defaults to LOG_LEVEL
        debug: Log every upsert and bind decision with thread names

    Returns:
        The handler, so callers can detach it again
    """
    level = logging.DEBUG if debug else _resolve_level(level_name or os.getenv("LOG_LEVEL"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = _cli_handler(root_logger)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DEBUG_FORMAT if debug else LOG_FORMAT))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return handler
