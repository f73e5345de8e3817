"""
Logging setup for applications using SeqDoc SDK.

The SDK itself only creates module loggers; call setup_logging() from the
application entry point to install a handler.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import LogFormat, Settings


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings.

    Args:
        settings: SDK settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == LogFormat.JSON:
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
