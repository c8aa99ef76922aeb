import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional, Sequence, Union

# Constants
LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5

# Third-party loggers capped at WARNING
NOISY_LOGGERS = ("aiohttp", "asyncio", "urllib3")

FORMATTER = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _build_handlers(filename: Optional[str]) -> List[logging.Handler]:
    # Reports go to stdout, so the console handler writes to stderr
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if filename:
        try:
            handlers.append(RotatingFileHandler(filename, maxBytes=MAX_LOG_SIZE_BYTES, backupCount=LOG_BACKUP_COUNT))
        except OSError as e:
            sys.stderr.write(f"Warning: Could not set up file logging to '{filename}': {e}\n")

    for handler in handlers:
        handler.setFormatter(FORMATTER)
    return handlers


def to_log_level(log_level: Union[int, str]) -> int:
    """Accepts logging.DEBUG as well as "debug" / "DEBUG". Unknown names fall back to INFO."""
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(log_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    filename: Optional[str] = None,
    log_level: Union[int, str] = logging.INFO,
    quiet_loggers: Sequence[str] = NOISY_LOGGERS,
) -> None:
    """
    Configures the root logger for the application.
    Each CLI command calls this once, before any report is built.

    Args:
        filename: Optional path to a log file. If provided, file logging is enabled.
        log_level: The logging level, either a number or a name such as "DEBUG".
        quiet_loggers: Library loggers limited to WARNING.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(to_log_level(log_level))

    # Remove existing handlers to prevent duplicate logging
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in _build_handlers(filename):
        root_logger.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Retrieves a logger instance with the specified name.
    """
    return logging.getLogger(name)
