"""Logging setup for trac-relay.

All modules share the ``trac_relay`` logger obtained through get_logger(),
so a single setup_logging() call at process start controls verbosity.
"""

import logging
import sys

LOGGER_NAME = "trac_relay"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it when a name is given."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def setup_logging(debug: bool = False, stream=None) -> logging.Logger:
    """Configure the package logger.

    Args:
        debug: Enable DEBUG level (HTTP exchanges included)
        stream: Output stream (default: stderr)

    Returns:
        The configured package logger
    """
    logger = get_logger()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Repeated calls (tests, reloads) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
