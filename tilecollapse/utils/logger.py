"""Logging utilities tailored for tile collapse runs."""

from __future__ import annotations

import logging
from typing import Optional


PACKAGE_LOGGER = "tilecollapse"
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: int = logging.INFO) -> None:
    """Install a single stream handler on the root logger.

    Every line carries the logger name so candidate setup, propagation and
    retry messages from one reseeded run can be told apart. Calling this
    again replaces the previous handler.
    """

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the package namespace, configuring defaults once."""

    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name or PACKAGE_LOGGER)
