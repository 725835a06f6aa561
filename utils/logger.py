"""
utils/logger.py — Project-wide logging configuration
=====================================================
Provides a single `get_logger(name)` factory so every module gets a
consistently-formatted logger with colour-coded console output.

The default level can be raised or lowered for the whole process with the
``VITALSCAN_LOG_LEVEL`` environment variable (e.g. ``DEBUG`` to see every
rejected frame).
"""

import logging
import os
import sys

# Colour codes (ANSI-256, works on most terminals)
_COLOURS = {
    logging.DEBUG:    "\033[36m",   # cyan
    logging.INFO:     "\033[32m",   # green
    logging.WARNING:  "\033[33m",   # yellow
    logging.ERROR:    "\033[31m",   # red
    logging.CRITICAL: "\033[35m",   # magenta
}
_RESET = "\033[0m"

_ENV_LEVEL = "VITALSCAN_LOG_LEVEL"


class _ColourFormatter(logging.Formatter):
    """Inject ANSI colour around the log-level tag (only when writing to a TTY)."""

    def __init__(self, *args, use_colour: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colour = use_colour

    def format(self, record: logging.LogRecord) -> str:
        if not self._use_colour:
            return super().format(record)
        # Format a copy so other handlers still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        colour = _COLOURS.get(record.levelno, _RESET)
        record.levelname = f"{colour}{record.levelname:<8}{_RESET}"
        return super().format(record)


_BASE_FMT = "%(asctime)s  %(levelname)s  %(name)-20s  %(message)s"
_DATE_FMT = "%H:%M:%S"

# Module-level registry to avoid adding duplicate handlers
_loggers: dict[str, logging.Logger] = {}


def _resolve_level(level: int | None) -> int:
    if level is not None:
        return level
    name = os.environ.get(_ENV_LEVEL, "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return (or create) a named logger.

    Parameters
    ----------
    name  : str         Module / component name shown in log lines.
    level : int | None  Minimum severity.  None → ``VITALSCAN_LOG_LEVEL`` or INFO.
    """
    if name in _loggers:
        return _loggers[name]

    level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False          # Avoid duplicate messages from root

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        _ColourFormatter(
            fmt=_BASE_FMT,
            datefmt=_DATE_FMT,
            use_colour=sys.stdout.isatty(),
        )
    )
    logger.addHandler(handler)

    _loggers[name] = logger
    return logger
