"""Logging setup for hosts and the CLI.

The library only creates module loggers; nothing is configured on
import.  Entry points call :func:`configure_logging` once.
"""

import logging
import sys
from typing import Literal, TextIO

from cobalt_core.config import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Third-party loggers kept at WARNING regardless of the requested level
QUIET_LOGGERS = ("asyncio", "markdown_it")

_FORMAT = "%(levelname)s | %(name)s | %(message)s"
_DEBUG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s | %(name)s | %(message)s"


def quiet_third_party_loggers() -> None:
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(level: LogLevel | None = None, stream: TextIO | None = None) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level for ``cobalt_core`` loggers; defaults to
            ``CoreSettings.log_level``.
        stream: Output stream, stderr by default.
    """
    log_level = getattr(logging, level or get_settings().log_level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            _DEBUG_FORMAT if log_level == logging.DEBUG else _FORMAT,
            datefmt="%H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    logging.getLogger("cobalt_core").setLevel(log_level)
    quiet_third_party_loggers()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
