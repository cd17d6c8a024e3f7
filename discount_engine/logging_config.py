from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from discount_engine.settings import LoggingSettings

PACKAGE_LOGGER = "discount_engine"


def setup_logging(config: LoggingSettings) -> logging.Logger:
    """
    Configure the package logger.

    Every run appends to the same log file; console output is optional. Calling
    this twice does not add a second set of handlers.

    Args:
        config: Logging section of the settings

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level, logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(config.format)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        config.file,
        mode="a",
        maxBytes=10485760,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.propagate = False
    return logger
