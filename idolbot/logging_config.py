"""Centralized logging configuration for the idol bot."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
CONSOLE_FORMAT = '[%(asctime)s %(levelname)s %(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%dT%H:%M:%S'

# Chatty at DEBUG on every request and stream reconnect
NOISY_LOGGERS = ('urllib3', 'requests')


def log_file_path(log_dir: Path, started: Optional[datetime] = None) -> Path:
    """One log file per process start: ``idolbot_YYYYmmdd_HHMMSS.log``."""
    started = started or datetime.now()
    return log_dir / f'idolbot_{started.strftime("%Y%m%d_%H%M%S")}.log'


def setup_logging(
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Configure the ``idolbot`` logger hierarchy.

    The log file records everything down to DEBUG; the console only shows
    ``level`` and above.

    Args:
        log_dir: Directory for log files (default: ./logs)
        level: Console logging level (default: INFO)
        log_to_file: Whether to log to file (default: True)
        log_to_console: Whether to log to console (default: True)
        quiet: Third-party loggers to limit to WARNING

    Returns:
        The configured ``idolbot`` logger

    Example:
        from idolbot.logging_config import setup_logging
        logger = setup_logging(level=logging.DEBUG, log_to_file=False)
        logger.info("Waiting for the first event")
    """
    logger = logging.getLogger('idolbot')
    logger.setLevel(logging.DEBUG if log_to_file else level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_file:
        log_dir = Path(log_dir) if log_dir is not None else Path('logs')
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path(log_dir), encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def parse_level(name: Optional[str], default: int = logging.INFO) -> int:
    """Turn a level name such as "debug" into a logging level."""
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default
