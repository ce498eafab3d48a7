"""
Logger configuration.

Console logging with ISO timestamps, configured once by the application
entry point. Modules obtain their logger through get_logger(__name__).
"""

import logging
import sys

from flowchat.config import LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger with a single stdout handler."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.addHandler(handler)

    # requests is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
