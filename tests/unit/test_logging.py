"""Unit tests for the dayplanner logger setup."""
import logging

import pytest

from dayplanner.core.config import LoggingConfig
from dayplanner.core.logging import LOG_FILE_NAME, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    configure_logging()


class TestConfigureLogging:

    def test_level_from_settings(self):
        logger = configure_logging(LoggingConfig(level="debug", logs_path=None))
        assert logger.name == "dayplanner"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_unknown_level_falls_back_to_info(self):
        logger = configure_logging(LoggingConfig(level="chatty", logs_path=None))
        assert logger.level == logging.INFO

    def test_console_only_without_logs_path(self):
        logger = configure_logging(LoggingConfig(logs_path=None))
        assert [type(h) for h in logger.handlers] == [logging.StreamHandler]

    def test_file_handler_with_logs_path(self, tmp_path):
        logger = configure_logging(LoggingConfig(logs_path=str(tmp_path / "logs")))

        logger.warning("[Test] written to file")
        for handler in logger.handlers:
            handler.flush()

        log_file = tmp_path / "logs" / LOG_FILE_NAME
        assert log_file.exists()
        assert "[Test] written to file" in log_file.read_text()

    def test_custom_format(self):
        logger = configure_logging(LoggingConfig(format="%(levelname)s|%(message)s", logs_path=None))
        record = logging.LogRecord("dayplanner", logging.INFO, __file__, 1, "hello", None, None)
        assert logger.handlers[0].formatter.format(record) == "INFO|hello"

    def test_reconfigure_replaces_handlers(self):
        configure_logging(LoggingConfig(logs_path=None))
        logger = configure_logging(LoggingConfig(logs_path=None))
        assert len(logger.handlers) == 1

    def test_get_logger_is_singleton(self):
        assert get_logger() is get_logger()
        assert get_logger() is logging.getLogger("dayplanner")
