from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "CADKERNEL_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def setup_logging(level: int | str | None = None, format_string: str | None = None) -> logging.Logger:
    """Configure the root logger with a single stderr handler.

    ``level`` defaults to the ``CADKERNEL_LOG_LEVEL`` environment variable,
    else ``WARNING``.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    logger.addHandler(handler)

    # ezdxf reports every loaded add-on at INFO
    logging.getLogger("ezdxf").setLevel(logging.WARNING)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
