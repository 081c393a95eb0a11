"""
Logging configuration for basesync.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import LoggingConfig


def setup_logging(
    config: Optional[LoggingConfig] = None,
    debug: bool = False,
) -> logging.Logger:
    """
    Configure the ``basesync`` logger hierarchy.

    Args:
        config: Logging configuration (defaults are used when omitted)
        debug: Force DEBUG level regardless of the configured level

    Returns:
        The configured package logger
    """
    config = config or LoggingConfig()

    logger = logging.getLogger("basesync")
    logger.setLevel(logging.DEBUG if debug else getattr(logging, config.level))
    logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
