"""Console logging for the ``ti`` logger tree."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

TRACE = 5
ROOT_LOGGER = "ti"

LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_PREFIXES = {
    TRACE: "[TRACE]",
    logging.DEBUG: "[DEBUG]",
    logging.INFO: "[INFO] ",
    logging.WARNING: "[WARN] ",
    logging.ERROR: "[ERROR]",
    logging.CRITICAL: "[ERROR]",
}

_ANSI = {
    TRACE: "\033[90m",
    logging.DEBUG: "\033[35m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[31m",
}

logging.addLevelName(TRACE, "TRACE")


class ConsoleFormatter(logging.Formatter):
    def __init__(self, *, colors: bool = False) -> None:
        super().__init__()
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:
        prefix = _PREFIXES.get(record.levelno, f"[{record.levelname}]")
        text = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        if self.colors:
            return f"{_ANSI.get(record.levelno, '')}{text}\033[39m"
        return text


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"Invalid log level \"{name}\", expected one of: {', '.join(LEVELS)}") from None


def configure_logging(
    level: str | None = None,
    *,
    quiet: bool = False,
    colors: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """(Re)configure the ``ti`` logger. Safe to call more than once."""

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_ti_console", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler._ti_console = True  # type: ignore[attr-defined]
    handler.setFormatter(ConsoleFormatter(colors=colors))
    logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel(logging.CRITICAL + 1 if quiet else parse_level(level))
    return logger


def trace(logger: logging.Logger, msg: str, *args: object) -> None:
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)
