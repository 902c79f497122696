"""Console logging setup for scripts and the command line tool."""

from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Attach a console handler to the root logger.

    Does nothing when the root logger already has handlers, so an embedding
    application keeps its own configuration.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(handler)
