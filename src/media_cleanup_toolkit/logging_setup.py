"""Logging configuration: Rich console output plus an optional log file."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

LOG_FILE_NAME = "mct.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    config: LoggingConfig | None = None,
    log_dir: Path | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> Path | None:
    """
    Install handlers on the package logger.

    Args:
        config: Logging section of the app config
        log_dir: Directory for mct.log when file logging is enabled
        verbose: Force DEBUG level
        console: Rich console to log to (default: stderr)

    Returns:
        Path of the log file, or None if file logging is off
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)

    package_logger = logging.getLogger("media_cleanup_toolkit")
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if config.console_logging:
        rich_handler = RichHandler(
            console=console or Console(stderr=True), show_path=False, markup=False, rich_tracebacks=False
        )
        rich_handler.setLevel(level)
        package_logger.addHandler(rich_handler)

    log_file = None
    if config.file_logging and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILE_NAME
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    return log_file
