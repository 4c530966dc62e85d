"""Logging for execbench.

All log output goes to stderr.  Stdout carries results only: an executor
child prints exactly one JSON line there and the benchmark driver
decodes nothing else, so a stray log record on stdout would corrupt the
result line.

There are two setups:

* the benchmark driver (:func:`setup_logging`), whose console level
  follows ``-v``/``-q`` and which can also keep a DEBUG log file;
* an executor child (:func:`setup_executor_logging`), which shares the
  driver's stderr and so tags every record with its pid.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOGGER_NAME = "execbench"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_DRIVER_FORMAT = "%(levelname)-8s %(message)s"
_EXECUTOR_FORMAT = "[executor %(process)d] %(levelname)s %(name)s: %(message)s"


def _reset_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    return logger


def _stderr_handler(stream: TextIO | None, level: int, fmt: str) -> logging.Handler:
    # Resolved per call, not at import.
    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the execbench logger for a benchmark run.

    Args:
        verbose: Log every invocation (DEBUG).
        quiet: Only warnings and errors.  Ignored if *verbose* is True.
        log_file: Also log everything at DEBUG level to this file.
        stream: Console stream; defaults to the current ``sys.stderr``.

    Returns:
        The configured ``execbench`` logger.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = _reset_logger()
    logger.addHandler(_stderr_handler(stream, level, _DRIVER_FORMAT))
    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)
    return logger


def setup_executor_logging(
    *,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the execbench logger inside an executor child.

    Only warnings are shown unless *verbose* is set.
    """
    logger = _reset_logger()
    level = logging.DEBUG if verbose else logging.WARNING
    logger.addHandler(_stderr_handler(stream, level, _EXECUTOR_FORMAT))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the ``execbench.<name>`` logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
