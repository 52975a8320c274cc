"""
=====================================
Configuration management for dbquery.
=====================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for application-wide access.

The configuration system ensures:
- Single source of truth for connection and logging settings
- Type conversion for ports and flags
- An explicit DATABASE_URL overriding the individual connection parts

Example:
    >>> from core.config import config
    >>>
    >>> # SQLAlchemy URL for the configured backend
    >>> url = config.get_connection_string()
    >>>
    >>> # Access individual settings
    >>> print(f"Driver: {config.db_driver}, database: {config.db_name}")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from sqlalchemy.engine import URL

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    """Interpret common truthy strings ('1', 'true', 'yes', 'on')."""
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class DatabaseConfig:
    """Database connection settings.

    Attributes:
        url: Full SQLAlchemy URL; takes precedence over the parts below
        driver: SQLAlchemy drivername (e.g. 'sqlite', 'mysql+pymysql')
        host: Database server hostname
        port: Database server port (None for driver default)
        user: Database username
        password: Database password
        database: Database name, or file path for SQLite
        echo: Have SQLAlchemy log every statement
    """

    url: Optional[str] = None
    driver: str = 'sqlite'
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    echo: bool = False

    def get_connection_string(self) -> Union[str, URL]:
        """Get the SQLAlchemy connection URL.

        Returns:
            The explicit url when set, otherwise a URL built with URL.create().
            An unset SQLite database resolves to an in-memory database.
        """
        if self.url:
            return self.url
        return URL.create(
            drivername=self.driver,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database
        )


@dataclass
class LoggingConfig:
    """Logging settings consumed by core.logger.setup_logging().

    Attributes:
        level: Root log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name
        log_dir: Directory for the log file
        use_colors: Colored console output
    """

    level: str = 'INFO'
    log_file: Optional[str] = None
    log_dir: Optional[str] = None
    use_colors: bool = True


class Config:
    """Centralized configuration manager.

    Attributes:
        db: DatabaseConfig with connection settings
        logging: LoggingConfig with log settings

    Properties:
        db_driver: SQLAlchemy drivername
        db_name: Database name
        db_echo: SQL echo flag

    Example:
        >>> config = Config()
        >>> url = config.get_connection_string()
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        port = os.getenv('DB_PORT')
        self.db = DatabaseConfig(
            url=os.getenv('DATABASE_URL') or None,
            driver=os.getenv('DB_DRIVER', 'sqlite'),
            host=os.getenv('DB_HOST') or None,
            port=int(port) if port else None,
            user=os.getenv('DB_USER') or None,
            password=os.getenv('DB_PASSWORD') or None,
            database=os.getenv('DB_NAME') or None,
            echo=_as_bool(os.getenv('DB_ECHO'))
        )

        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            log_file=os.getenv('LOG_FILE') or None,
            log_dir=os.getenv('LOG_DIR') or None,
            use_colors=_as_bool(os.getenv('LOG_COLORS'), default=True)
        )

    @property
    def db_driver(self) -> str:
        """Get SQLAlchemy drivername."""
        return self.db.driver

    @property
    def db_name(self) -> Optional[str]:
        """Get database name."""
        return self.db.database

    @property
    def db_echo(self) -> bool:
        """Get SQL echo flag."""
        return self.db.echo

    def get_connection_string(self) -> Union[str, URL]:
        """Get the SQLAlchemy connection URL for the configured database."""
        return self.db.get_connection_string()


# Global configuration instance
config = Config()
