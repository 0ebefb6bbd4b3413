"""Logging setup for the command line."""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

DEFAULT_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

PACKAGE_LOGGER = "codegraph_cs"


def setup_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Writes to *stream*, or ``sys.stderr`` when omitted, so stdout stays free
    for the JSON result. Calling it again replaces the previous handler.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    package_logger.addHandler(handler)
    return package_logger
