from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from . import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(component_name: str = "qrferry", log_level: Optional[str] = None) -> logging.Logger:
    """Attach a stdout handler to the package logger.

    The level falls back to the QRFERRY_LOG_LEVEL environment variable, then INFO.
    """
    if log_level is None:
        log_level = os.getenv(config.LOG_LEVEL_ENV, "INFO")
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
