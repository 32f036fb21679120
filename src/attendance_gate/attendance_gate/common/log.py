from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

# "attendance_gate", or the src-qualified name when imported from a checkout
PACKAGE_LOGGER = __name__.rsplit(".", 2)[0]


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger once."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
