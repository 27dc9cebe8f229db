import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "chat_relay"

logger = logging.getLogger(ROOT_LOGGER_NAME)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger.

    Safe to call more than once; existing handlers are replaced so log lines
    are never duplicated.
    """
    logger.setLevel(level.upper())

    if logger.handlers:
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it for *name*."""
    if not name:
        return logger
    if name.startswith(ROOT_LOGGER_NAME + "."):
        name = name[len(ROOT_LOGGER_NAME) + 1:]
    return logger.getChild(name)


__all__ = ["configure_logging", "get_logger", "logger"]
