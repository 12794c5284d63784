"""Logger hierarchy for reposense components.

Every module logs through ``get_logger("<component>")`` so a single call to
``configure_logging`` controls the whole package. Records go to stderr because
stdout carries the rendered report.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

ROOT_LOGGER = "reposense"
CONSOLE_FORMAT = "[reposense] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    """Return ``reposense.<component>``, or the package logger itself."""
    if not component:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def _attach(
    logger: logging.Logger, handler: logging.Handler, level: int, fmt: str
) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install console (and optional file) handlers on the package logger.

    Safe to call repeatedly: previously installed handlers are closed and replaced.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    _attach(logger, logging.StreamHandler(stream or sys.stderr), level, CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
