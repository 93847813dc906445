"""
Logging Configuration Module
============================

Provides centralized logging configuration for Cosmic.

This module sets up logging with:
- Console output on stderr with rich formatting
- Optional file logging
- Configurable log levels

Functions
---------
setup_logging
    Configure application-wide logging.

Example
-------
>>> import logging
>>> from cosmic.core.logging import setup_logging
>>>
>>> setup_logging(level="DEBUG", log_file="cosmic.log")
>>> logger = logging.getLogger(__name__)
>>> logger.info("Listing stacks")

Notes
-----
Query results are written to stdout. Log records always go to stderr so
that piping ``cosmic get`` output is never polluted by diagnostics.

See Also
--------
logging : Python standard library logging module.
rich.logging : Rich library's logging handler.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose debug output drowns out ours
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def setup_logging(
    level: Union[str, int] = "WARNING",
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure application-wide logging.

    Parameters
    ----------
    level : str or int, default="WARNING"
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    log_file : str, optional
        Path to log file. If provided, logs are also written there.
    rich_tracebacks : bool, default=True
        Whether to use Rich for exception tracebacks.
    console : Console, optional
        Rich Console instance. Defaults to a new stderr console.

    Examples
    --------
    >>> setup_logging(level="INFO")
    >>> setup_logging(level="DEBUG", log_file="cosmic.log")

    Notes
    -----
    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """
    level = _coerce_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=False,
        markup=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(
        "Logging configured: level=%s, file=%s",
        logging.getLevelName(level),
        log_file or "None",
    )
