"""Tests for the logging setup."""

import logging
import os
from io import StringIO
from unittest.mock import patch

from rivetbot import logging_setup
from rivetbot.logging_setup import LEVEL_STYLES, RESET, LogObjects, ScreenLogFormatter, add_log_file, colors_enabled, get_logger, init_logger, sgr


def record(level, msg="boom %s", args=("now",)):
    return logging.LogRecord("dispatch", level, __file__, 1, msg, args, None)


def test_sgr():
    assert sgr("33", "2") == "\x1b[33;2m"
    assert sgr() == ""


def test_no_color_wins():
    with patch.dict(os.environ, {"NO_COLOR": "1", "FORCE_COLOR": "1"}):
        assert colors_enabled(StringIO()) is False


def test_force_color():
    with patch.dict(os.environ, {"FORCE_COLOR": "1", "NO_COLOR": ""}):
        assert colors_enabled(StringIO()) is True


def test_non_tty_has_no_colors():
    with patch.dict(os.environ, {"NO_COLOR": "", "FORCE_COLOR": ""}):
        assert colors_enabled(StringIO()) is False


def test_formatter_without_colors():
    with patch.dict(os.environ, {"NO_COLOR": "1"}):
        formatter = ScreenLogFormatter()
    text = formatter.format(record(logging.ERROR))
    assert "boom now" in text
    assert "\x1b[" not in text


def test_formatter_with_colors():
    with patch.dict(os.environ, {"FORCE_COLOR": "1", "NO_COLOR": ""}):
        formatter = ScreenLogFormatter()
    text = formatter.format(record(logging.CRITICAL))
    assert text.startswith(sgr(*LEVEL_STYLES[logging.CRITICAL]))
    assert text.endswith(RESET)
    # info is not styled
    assert "\x1b[" not in formatter.format(record(logging.INFO))


@patch.dict(logging_setup._state)
def test_log_file(tmp_path):
    saved = list(LogObjects.handlers)
    try:
        init_logger(force_debug=True)
        log_path = tmp_path / "bot.log"
        add_log_file(str(log_path))
        logger = get_logger("file-test")
        assert logger.level == logging.DEBUG
        logger.warning("written")
        for handler in LogObjects.handlers:
            handler.flush()
        assert "[WARNING] file-test :: written" in log_path.read_text()
    finally:
        for handler in LogObjects.handlers:
            if handler not in saved:
                handler.close()
        logging.getLogger("file-test").handlers.clear()
        LogObjects.handlers[:] = saved
