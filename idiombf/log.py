from __future__ import annotations

import logging
import os
from typing import Optional

LOGGER_NAME = "idiombf"
LOG_LEVEL_ENV = "IDIOMBF_LOG_LEVEL"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stderr handler to the package logger and set its level.

    ``level`` wins over the IDIOMBF_LOG_LEVEL environment variable; the
    default is WARNING.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("[%(asctime)s][%(levelname)s][%(name)s] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    level_name = (level or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    return logger


__all__ = ["configure_logging", "LOGGER_NAME", "LOG_LEVEL_ENV"]
