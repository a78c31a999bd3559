from __future__ import annotations

import io
import logging

import pytest

from ticli.utils.logger import TRACE, configure_logging, parse_level, trace


def test_prefixes_and_level_filtering() -> None:
    stream = io.StringIO()
    configure_logging("warn", stream=stream)
    log = logging.getLogger("ti.cli.test")
    log.info("hidden")
    log.warning("careful")
    log.error("broken")
    assert stream.getvalue().splitlines() == ["[WARN]  careful", "[ERROR] broken"]


def test_trace_level() -> None:
    stream = io.StringIO()
    configure_logging("trace", stream=stream)
    trace(logging.getLogger("ti.cli.test"), "detail %s", 42)
    assert stream.getvalue() == "[TRACE] detail 42\n"
    assert logging.getLogger("ti").level == TRACE


def test_quiet_silences_everything() -> None:
    stream = io.StringIO()
    configure_logging("trace", quiet=True, stream=stream)
    logging.getLogger("ti.cli.test").error("nope")
    assert stream.getvalue() == ""


def test_reconfigure_replaces_console_handler() -> None:
    configure_logging("info", stream=io.StringIO())
    configure_logging("debug", stream=io.StringIO())
    console = [h for h in logging.getLogger("ti").handlers if getattr(h, "_ti_console", False)]
    assert len(console) == 1


def test_colors_wrap_output() -> None:
    stream = io.StringIO()
    configure_logging("info", colors=True, stream=stream)
    logging.getLogger("ti.cli.test").info("hi")
    assert stream.getvalue().startswith("\033[32m[INFO]  hi")


def test_parse_level() -> None:
    assert parse_level(None) == logging.INFO
    assert parse_level("DEBUG") == logging.DEBUG
    with pytest.raises(ValueError, match="Invalid log level"):
        parse_level("loud")
