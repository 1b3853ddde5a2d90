"""Logging setup: a colour-aware screen handler and optional log files.

Colours honour ``NO_COLOR`` and ``FORCE_COLOR``, otherwise they follow TTY
detection. ``DEBUG`` in the environment, or ``--debug``, lowers the level.
"""

import logging
import os
import sys
from typing import TextIO

__all__ = [
    "LEVEL_STYLES",
    "RESET",
    "LogObjects",
    "ScreenLogFormatter",
    "add_log_file",
    "colors_enabled",
    "get_logger",
    "init_logger",
    "is_debug",
    "sgr",
]

RESET = "\x1b[0m"

# SGR codes per level: colour, then intensity
LEVEL_STYLES: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("36", "2"),
    logging.WARNING: ("33", "2"),
    logging.ERROR: ("31", "2"),
    logging.CRITICAL: ("31", "1"),
}

SCREEN_FORMAT = "[%(name)s] %(message)s"
DEBUG_SCREEN_FORMAT = "%(name)20s - %(message)s // %(filename)s:%(lineno)d"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"

_state = {"debug": bool(os.environ.get("DEBUG"))}


def is_debug() -> bool:
    return _state["debug"]


def sgr(*codes: str) -> str:
    """Return the escape sequence selecting the rendition `codes`."""
    return f"\x1b[{';'.join(codes)}m" if codes else ""


def colors_enabled(stream: TextIO | None = None) -> bool:
    """Tell whether ANSI colours should be written to `stream` (stderr by default)."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    stream = sys.stderr if stream is None else stream
    return stream.isatty()


class LogObjects:
    """Handlers shared by every logger."""

    handlers: list[logging.Handler] = []


class ScreenLogFormatter(logging.Formatter):
    """Terse screen output, coloured by level when the stream allows it."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(DEBUG_SCREEN_FORMAT if is_debug() else SCREEN_FORMAT)
        self.colors = colors_enabled(stream)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        style = LEVEL_STYLES.get(record.levelno)
        if self.colors and style:
            return f"{sgr(*style)}{text}{RESET}"
        return text


def init_logger(filename: str | None = None, force_debug: bool = False) -> None:
    """Initialize the logging system.

    Args:
        filename: Optional filename to log to
        force_debug: If True, force debug level
    """
    if force_debug:
        _state["debug"] = True

    LogObjects.handlers.clear()
    if filename:
        add_log_file(filename)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(ScreenLogFormatter(sys.stderr))
    LogObjects.handlers.append(stream_handler)


def add_log_file(filename: str) -> None:
    """Also log to `filename`; loggers created afterwards pick it up."""
    handler = logging.FileHandler(filename)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    LogObjects.handlers.append(handler)


def get_logger(name: str = "rivetbot", level: int | None = None) -> logging.Logger:
    """Return a named logger wired to the shared handlers.

    Args:
        name: logger's name
        level: logger's level, from the debug state if not set
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else logging.DEBUG if is_debug() else logging.INFO)
    logger.propagate = False
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    return logger
