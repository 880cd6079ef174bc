"""
Shared logger utility for the inventory service.
Provides a consistent logger configuration for entry points (demo API, scripts).
"""

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str | None = None, level: str | None = None) -> logging.Logger:
    """
    Returns a logger with the specified name, configured with the standard format.
    The level comes from ``level``, else the ``LOG_LEVEL`` environment variable,
    else INFO. If no name is provided, returns the root logger.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger
