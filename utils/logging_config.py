"""Central logging configuration."""

from __future__ import annotations

import logging.config
import os
from typing import Optional

_CONFIGURED = False


def configure_logging(default_level: Optional[str] = None) -> None:
    """Log to stdout with a consistent formatter; safe to call more than once."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    level_name = (default_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": level_name, "handlers": ["stdout"]},
        }
    )
    _CONFIGURED = True
