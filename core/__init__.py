"""
========================================
Core infrastructure package for dbquery.
========================================

Centralized configuration management and logging setup shared by the
statement builder and the Database facade.

Modules:
    config: Configuration management from environment variables
    logger: Root logger configuration and utilities

Example:
    >>> from core.config import config
    >>> from core.logger import setup_logging
    >>>
    >>> setup_logging(log_level='DEBUG')
    >>> url = config.get_connection_string()
"""

__all__ = ['get_logger', 'setup_logging', 'config', 'Config']

from core.config import Config, config
from core.logger import get_logger, setup_logging
