"""Logging setup utilities for bcat.

Configures logging for the entire application based on the logging
configuration settings. Everything goes to stderr so that ``btee``
keeps standard output clean for the echoed input.
"""

from __future__ import annotations

import logging
import sys

from bcat.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the bcat application.

    Sets up the ``bcat`` logger with the specified level, format, and
    optional file handler. Calling it again replaces the handlers
    installed by a previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("bcat")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.debug("Logging initialized at %s level", config.level)
