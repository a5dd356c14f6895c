"""
Logging configuration for ftransfer.

Console output goes through Rich, the log file gets a plain parseable format.
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "ftransfer"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with full exception info for errors."""
        # Skip the base class's exception rendering, it is appended below
        exc_info, record.exc_info = record.exc_info, None
        exc_text, record.exc_text = record.exc_text, None
        try:
            result = super().format(record)
        finally:
            record.exc_info = exc_info
            record.exc_text = exc_text

        if record.exc_info:
            result += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()

        return result


class ConsoleFormatter(logging.Formatter):
    """Plain console format: ``level: timestamp - msg``, with file:line for errors."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR and record.pathname:
            filename = Path(record.pathname).name
            return f"{record.levelname}: {self.formatTime(record)} - {filename}:{record.lineno} - {record.getMessage()}"
        return f"{record.levelname}: {self.formatTime(record)} - {record.getMessage()}"


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int | None) -> int:
    """
    Parse logging level from string or int.

    Unknown values fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return LEVEL_MAP.get(level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for ftransfer.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite (default: 'a')
        console: Optional Rich Console instance to use (default: None, creates new)
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Only clear handlers from this specific logger, not root or child loggers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich:
            console_handler: logging.Handler = RichHandler(
                console=console or Console(stderr=True),
                level=level_int,
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format="[%Y-%m-%d %H:%M:%S]",
                omit_repeated_times=False,
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # The logger level still filters; the file captures whatever passes it
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    # Libraries stay quiet unless something is wrong
    logging.getLogger("paramiko").setLevel(max(level_int, logging.WARNING))
    logging.getLogger("aiohttp.access").setLevel(max(level_int, logging.WARNING))

    logger.propagate = False
    return logger


def setup_logging_from_config(
    config: dict[str, Any], project_dir: Path | None = None, debug: bool = False
) -> logging.Logger:
    """
    Setup logging from the ``logging`` section of the configuration.

    In debug mode everything is printed to the console at DEBUG level. Otherwise
    the console is disabled unless ``logging.console_enabled`` is set, and the
    log file (``logs/ftransfer.log`` by default) receives INFO and above.
    """
    logging_config = config.get("logging", {}) or {}

    level = logging.DEBUG if debug else logging_config.get("level", logging.INFO)
    file_mode = logging_config.get("file_mode", "a")
    console_enabled = debug or bool(logging_config.get("console_enabled", False))
    use_rich = logging_config.get("console_type", "rich") == "rich"

    log_file = None
    if logging_config.get("file_enabled", True):
        log_file = Path(logging_config.get("file") or "logs/ftransfer.log")
        if project_dir and not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=level,
        log_file=log_file,
        file_mode=file_mode,
        console_enabled=console_enabled,
        use_rich=use_rich,
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default: "ftransfer")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    # Child loggers propagate to the "ftransfer" handlers
    logger.propagate = True
    return logger
