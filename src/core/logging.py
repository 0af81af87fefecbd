"""
Logging for the pipeline, API and walkthrough script.
"""
from __future__ import annotations

import logging
import sys

from src.core.config import get_settings

# Google client libraries log every HTTP round-trip at INFO/DEBUG
_NOISY_LOGGERS = ("google", "google.auth", "urllib3", "sqlalchemy_bigquery")


def get_logger(name: str) -> logging.Logger:
    settings = get_settings()
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logger
