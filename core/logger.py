"""
==================================
Centralized logging configuration.
==================================

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records go. The query builder logs assembled statements
at DEBUG, the Database facade logs executed statements at DEBUG and
transaction boundaries at INFO/WARNING.

Provides:
- Colored console output with level markers
- Optional log file output
- Defaults taken from core.config (LOG_LEVEL, LOG_FILE, LOG_DIR, LOG_COLORS)

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> # Show every SQL statement the builder assembles
    >>> setup_logging(log_level='DEBUG')
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("Ready")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from core.config import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Console formatter adding ANSI colors and a level marker.

    The record's levelname is restored after formatting so other handlers
    sharing the record see the plain value.

    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
        MARKERS: Dict mapping log levels to emoji markers
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    MARKERS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️ ',
        'WARNING': '⚠️ ',
        'ERROR': '❌',
        'CRITICAL': '🔥'
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.marker = self.MARKERS.get(levelname, '')
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger, optionally overriding its level.

    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional level name (DEBUG/INFO/WARNING/ERROR/CRITICAL)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper()))
    return logger


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: Optional[bool] = None
) -> logging.Logger:
    """Configure the root logger.

    Replaces any handlers already installed on the root logger. Arguments
    left as None fall back to core.config.

    Args:
        log_level: Logging level name
        log_file: Optional log file name (e.g. 'dbquery.log')
        log_dir: Directory for log_file (defaults to 'logs')
        console_output: If True, log to stdout
        use_colors: Colored console output

    Returns:
        The configured root logger
    """
    level = getattr(logging, (log_level or config.logging.level).upper())
    log_file = log_file or config.logging.log_file
    log_dir = log_dir or config.logging.log_dir
    use_colors = config.logging.use_colors if use_colors is None else use_colors

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if use_colors:
            console_handler.setFormatter(ColoredFormatter(f"%(marker)s {LOG_FORMAT}", datefmt=DATE_FORMAT))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir or 'logs')
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    return root_logger
