from __future__ import annotations

import io
import logging
from typing import Generator

import pytest

import reqtidy.utils.logger as logger_module
from reqtidy.utils.logger import (
    ROOT_LOGGER_NAME,
    ColoredFormatter,
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)


@pytest.fixture
def clean_logger_state() -> Generator[None, None, None]:
    """Reset the reqtidy root logger before and after each test."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    logger_module._logging_configured = False

    yield

    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    logger_module._logging_configured = False


class TTYStream(io.StringIO):
    """In-memory stream reporting itself as a terminal."""

    def isatty(self) -> bool:
        return True


def _record(level: int = logging.WARNING, msg: str = "message") -> logging.LogRecord:
    return logging.LogRecord("reqtidy.test", level, __file__, 1, msg, None, None)


@pytest.mark.unit
class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def test_defaults(self) -> None:
        formatter = ColoredFormatter("%(levelname)s: %(message)s")

        assert formatter.use_color is True
        assert formatter.stream is None

    def test_no_color_when_disabled(self) -> None:
        formatter = ColoredFormatter("%(levelname)s: %(message)s", use_color=False)

        assert formatter.format(_record()) == "WARNING: message"

    def test_color_applied_for_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)
        stream = TTYStream()
        formatter = ColoredFormatter("%(levelname)s", stream=stream)

        assert formatter.format(_record()) == "\033[33mWARNING\033[0m"

    def test_record_not_mutated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)
        stream = TTYStream()
        record = _record()

        ColoredFormatter("%(levelname)s", stream=stream).format(record)

        assert record.levelname == "WARNING"

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert ColoredFormatter._should_use_color(io.StringIO()) is False

    def test_non_tty_stream(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)

        assert ColoredFormatter._should_use_color(io.StringIO()) is False


@pytest.mark.unit
class TestLevelForVerbosity:
    """Tests for level_for_verbosity."""

    @pytest.mark.parametrize(
        "verbose,expected",
        [(-1, logging.WARNING), (0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_mapping(self, verbose: int, expected: int) -> None:
        assert level_for_verbosity(verbose) == expected


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging and friends."""

    def test_configures_single_handler(self, clean_logger_state: None) -> None:
        stream = io.StringIO()

        setup_logging(level=logging.INFO, stream=stream)
        setup_logging(level=logging.INFO, stream=stream)

        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert root.propagate is False
        assert is_logging_configured() is True

    def test_messages_reach_stream(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        get_logger("core.pruner").info("Removed %d package(s)", 2)

        assert "Removed 2 package(s)" in stream.getvalue()

    def test_level_filters_messages(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.WARNING, stream=stream)

        get_logger("core.scanner").info("hidden")
        get_logger("core.scanner").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_debug_uses_verbose_format(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, stream=stream)

        get_logger("core.resolver").debug("detail")

        assert "reqtidy.core.resolver" in stream.getvalue()

    def test_disable_logging(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        disable_logging()
        get_logger("core.pruner").warning("silenced")

        assert stream.getvalue() == ""
        assert is_logging_configured() is False


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger naming."""

    def test_root(self) -> None:
        assert get_logger().name == ROOT_LOGGER_NAME
        assert get_logger(ROOT_LOGGER_NAME).name == ROOT_LOGGER_NAME

    def test_relative_name(self) -> None:
        assert get_logger("core.manifest").name == "reqtidy.core.manifest"

    def test_qualified_name_unchanged(self) -> None:
        assert get_logger("reqtidy.core.manifest").name == "reqtidy.core.manifest"
