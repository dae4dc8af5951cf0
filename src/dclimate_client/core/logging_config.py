"""
dClimate Client Logging Configuration

Logging is silent by default (NullHandler, WARNING). Call ``setup_logging``
to see catalog fetches, fallbacks and skipped variants.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = 'dclimate_client'

# Third-party loggers that log every HTTP request at INFO
_HTTP_LOGGERS = ('httpx', 'httpcore', 'fsspec')


def _coerce_level(level: Union[int, str], default: int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), default)
    return level


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    date_format: Optional[str] = None,
    quiet_http: bool = True,
) -> logging.Logger:
    """
    Configure logging for the dClimate client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
               Can be string or logging constant
        log_file: Optional path to log file
        format_string: Custom format string for log messages
        date_format: Custom date format string
        quiet_http: Keep httpx/httpcore/fsspec request logs at WARNING

    Returns:
        logging.Logger: Configured package logger

    Examples:
        >>> from dclimate_client import setup_logging
        >>> setup_logging()                       # INFO to stdout
        >>> setup_logging(level="DEBUG")          # show fast-path fallbacks
        >>> setup_logging(log_file="client.log")  # also write to file
    """
    level = _coerce_level(level, logging.INFO)

    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    if date_format is None:
        date_format = '%Y-%m-%d %H:%M:%S'

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(format_string, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info("Logging to file: %s", log_path)

    if quiet_http:
        for name in _HTTP_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logger.propagate = False
    return logger


# Silent by default
_default_logger = logging.getLogger(PACKAGE_LOGGER)
if not _default_logger.handlers:
    _default_logger.addHandler(logging.NullHandler())
_default_logger.setLevel(logging.WARNING)


def set_log_level(level: Union[int, str]) -> None:
    """
    Change the level of the package logger and its handlers.

    Examples:
        >>> from dclimate_client import set_log_level
        >>> set_log_level('DEBUG')
    """
    level = _coerce_level(level, logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
