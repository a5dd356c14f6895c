"""
Tests for formatting and logging helpers.
"""

import logging
import sys

import pytest
from rich.logging import RichHandler

from ftransfer.utils.formatting import bytes_to_human_readable
from ftransfer.utils.logging import (
    ConsoleFormatter,
    FileFormatter,
    _parse_level,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


@pytest.fixture(autouse=True)
def reset_ftransfer_logger():
    yield
    logger = logging.getLogger("ftransfer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.mark.unit
class TestBytesToHumanReadable:
    @pytest.mark.parametrize(
        "num_bytes, expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.00 KB"),
            (1536, "1.50 KB"),
            (5 * 1024 * 1024, "5.00 MB"),
            (3 * (1 << 30), "3.00 GB"),
        ],
    )
    def test_units(self, num_bytes, expected):
        assert bytes_to_human_readable(num_bytes) == expected


@pytest.mark.unit
class TestParseLevel:
    def test_names_are_case_insensitive(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("WARNING") == logging.WARNING

    def test_unknown_falls_back_to_info(self):
        assert _parse_level("chatty") == logging.INFO
        assert _parse_level(None) == logging.INFO

    def test_ints_pass_through(self):
        assert _parse_level(logging.ERROR) == logging.ERROR


class TestSetupLogging:
    def test_file_receives_child_logger_records(self, tmp_path):
        log_file = tmp_path / "logs" / "ftransfer.log"
        setup_logging(level="INFO", log_file=log_file, console_enabled=False)

        get_logger("ftransfer.sync.engine").info("Downloaded report.csv")
        get_logger("ftransfer.sync.engine").debug("not written")
        for handler in logging.getLogger("ftransfer").handlers:
            handler.flush()

        content = log_file.read_text()
        assert "[INFO    ] ftransfer.sync.engine: Downloaded report.csv" in content
        assert "not written" not in content

    def test_handlers_replaced_on_repeat_setup(self, tmp_path):
        setup_logging(log_file=tmp_path / "a.log", console_enabled=False)
        logger = setup_logging(log_file=tmp_path / "b.log", console_enabled=False)

        assert len(logger.handlers) == 1
        assert logger.handlers[0].baseFilename == str(tmp_path / "b.log")

    def test_console_handler_kinds(self):
        rich_logger = setup_logging(use_rich=True)
        assert isinstance(rich_logger.handlers[0], RichHandler)

        plain_logger = setup_logging(use_rich=False)
        assert isinstance(plain_logger.handlers[0].formatter, ConsoleFormatter)

    def test_from_config_defaults_to_file_only(self, tmp_path):
        logger = setup_logging_from_config({}, project_dir=tmp_path)

        assert [type(h) for h in logger.handlers] == [logging.FileHandler]
        assert (tmp_path / "logs").is_dir()
        assert logger.level == logging.INFO

    def test_from_config_debug_enables_console(self, tmp_path):
        logger = setup_logging_from_config({"logging": {"file_enabled": False}}, project_dir=tmp_path, debug=True)

        assert logger.level == logging.DEBUG
        assert [type(h) for h in logger.handlers] == [RichHandler]


class TestFormatters:
    def _record(self, level, exc_info=None):
        return logging.LogRecord(
            "ftransfer.test", level, "/src/ftransfer/sync/engine.py", 42, "message %s", ("x",), exc_info
        )

    def test_console_error_includes_location(self):
        line = ConsoleFormatter().format(self._record(logging.ERROR))
        assert line.startswith("ERROR: ")
        assert line.endswith("engine.py:42 - message x")

    def test_console_info_has_no_location(self):
        line = ConsoleFormatter().format(self._record(logging.INFO))
        assert "engine.py" not in line
        assert line.endswith(" - message x")

    def test_file_formatter_appends_traceback(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = self._record(logging.ERROR, exc_info=sys.exc_info())

        text = FileFormatter().format(record)

        assert "message x" in text
        assert "ValueError: bad value" in text
        assert text.count("ValueError: bad value") == 1
