"""
Logging configuration.

Routes application and standard-library logging through loguru.
"""

import logging
import sys
from typing import Any

from loguru import logger

_DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level> | {extra}"
)

# Libraries whose records are forwarded into loguru
_INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy.engine", "httpx")

logger.configure(extra={"name": "filevault"})


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def init_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure loguru sinks and intercept standard logging.

    Args:
        level: Minimum log level.
        json_logs: Emit serialized JSON records instead of the text format.
    """
    logger.remove()
    logger.configure(extra={"name": "filevault"})
    if json_logs:
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(sys.stderr, level=level.upper(), format=_DEFAULT_FORMAT)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


def get_logger(name: str) -> Any:
    """
    Get a logger bound to a module name.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        Bound loguru logger.
    """
    return logger.bind(name=name)
