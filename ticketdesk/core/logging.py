"""Process-wide logging configuration."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from ticketdesk.core.config import Settings

APP_LOGGER = "ticketdesk"
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _build_config(level: int, fmt: str) -> dict[str, Any]:
    console = {"handlers": ["console"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": fmt}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "level": level,
            }
        },
        "loggers": {name: dict(console) for name in (APP_LOGGER, *_SERVER_LOGGERS)},
        "root": {"handlers": ["console"], "level": logging.WARNING},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Route application and server logs through one console handler."""

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    dictConfig(_build_config(level, settings.log_format))
    logger = logging.getLogger(APP_LOGGER)
    logger.debug("Logging configured for %s (%s)", settings.app_name, settings.environment)
    return logger
