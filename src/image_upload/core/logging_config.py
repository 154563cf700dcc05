"""Logging setup driven by the pipeline settings.

Loggers write to stdout. Level and format come from ``Settings.log_level`` and
``Settings.log_format`` (``IMAGE_UPLOAD_LOG_LEVEL`` / ``IMAGE_UPLOAD_LOG_FORMAT``);
callers that have no settings yet get INFO with the structured format.
"""

import sys
import logging
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from .config import Settings

ROOT_LOGGER_NAME = "image-upload"
DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "structured"

LOG_FORMATS: Dict[str, str] = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def build_formatter(format_type: str) -> logging.Formatter:
    """Formatter for a format name; unknown names fall back to structured."""
    fmt = LOG_FORMATS.get(format_type.lower(), LOG_FORMATS[DEFAULT_FORMAT])
    return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = DEFAULT_LEVEL,
    format_type: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure a stdout logger.

    Calling it again for the same name reapplies level and format to the
    existing handler instead of adding another one.

    Args:
        name: Logger name
        level: Level name; unknown names fall back to INFO
        format_type: "structured" or "simple"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler(sys.stdout))

    formatter = build_formatter(format_type)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False
    return logger


def get_logger(
    name: str = ROOT_LOGGER_NAME, settings: Optional["Settings"] = None
) -> logging.Logger:
    """Get a logger configured from ``settings``, or from the defaults."""
    if settings is None:
        return setup_logger(name)
    return setup_logger(name, level=settings.log_level, format_type=settings.log_format)
