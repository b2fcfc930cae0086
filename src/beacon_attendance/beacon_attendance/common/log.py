"""Logging setup shared by the app factory and the scripts.

Modules log through ``logging.getLogger(__name__)``; everything lives under the
``beacon_attendance`` namespace so one call configures the whole package.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
ROOT_LOGGER_NAME = "beacon_attendance"


def configure_logging(level: str | int = "INFO", *, logger_name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Attach a single formatted stream handler to the package logger.

    Calling it again only updates the level, so the app factory and scripts can
    both call it without duplicating output.
    """

    logger = logging.getLogger(logger_name)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    if not any(getattr(h, "_beacon_attendance", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._beacon_attendance = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.propagate = False
    return logger
