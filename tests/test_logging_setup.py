"""Tests for logging handler setup."""

import logging

import pytest
from rich.logging import RichHandler

from media_cleanup_toolkit.config import LoggingConfig
from media_cleanup_toolkit.logging_setup import LOG_FILE_NAME, configure_logging


@pytest.fixture(autouse=True)
def _restore_package_logger():
    package_logger = logging.getLogger("media_cleanup_toolkit")
    level = package_logger.level
    handlers = list(package_logger.handlers)
    yield package_logger
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_only(self, tmp_path):
        assert configure_logging(LoggingConfig(), log_dir=tmp_path) is None
        handlers = logging.getLogger("media_cleanup_toolkit").handlers
        assert [type(h) for h in handlers] == [RichHandler]
        assert not (tmp_path / LOG_FILE_NAME).exists()

    def test_file_logging(self, tmp_path):
        config = LoggingConfig(file_logging=True, console_logging=False)
        log_file = configure_logging(config, log_dir=tmp_path / "logs")

        assert log_file == tmp_path / "logs" / LOG_FILE_NAME
        logging.getLogger("media_cleanup_toolkit.scanner").info("Scanning /photos")
        for handler in logging.getLogger("media_cleanup_toolkit").handlers:
            handler.flush()
        assert "Scanning /photos" in log_file.read_text()

    def test_no_handlers_gets_null_handler(self):
        configure_logging(LoggingConfig(console_logging=False))
        handlers = logging.getLogger("media_cleanup_toolkit").handlers
        assert [type(h) for h in handlers] == [logging.NullHandler]

    def test_level(self):
        configure_logging(LoggingConfig(level="warning", console_logging=False))
        assert logging.getLogger("media_cleanup_toolkit").level == logging.WARNING

    def test_verbose_forces_debug(self):
        configure_logging(LoggingConfig(level="ERROR", console_logging=False), verbose=True)
        assert logging.getLogger("media_cleanup_toolkit").level == logging.DEBUG

    def test_reconfigure_replaces_handlers(self, tmp_path):
        configure_logging(LoggingConfig())
        configure_logging(LoggingConfig())
        assert len(logging.getLogger("media_cleanup_toolkit").handlers) == 1
