"""
==================================
Database connectivity utilities.
==================================

Provides reusable engine creation, availability checks and wait-with-retry
helpers. Connection establishment stays here so the statement builder and
the Database facade only ever see an already opened SQLAlchemy connection.

Key Features:
    - Engine creation from config or an explicit URL
    - Pool settings applied only to backends that use a queue pool
    - Database availability checking
    - Retry logic for databases that are still starting

Example:
    >>> from utils.database_utils import (
    ...     check_database_available,
    ...     create_sqlalchemy_engine,
    ...     wait_for_database
    ... )
    >>>
    >>> engine = create_sqlalchemy_engine('sqlite:///orders.db')
    >>> if check_database_available(engine):
    ...     print("Database ready")
    >>>
    >>> wait_for_database(engine, max_retries=5)
"""

import logging
import time
from typing import Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from core.config import config

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Exception raised when database connection fails."""
    pass


def get_connection_string(url: Optional[Union[str, URL]] = None) -> Union[str, URL]:
    """
    Resolve the connection URL.

    Args:
        url: Explicit URL (defaults to config.get_connection_string())

    Returns:
        SQLAlchemy URL string or URL object
    """
    return url if url is not None else config.get_connection_string()


def create_sqlalchemy_engine(
    url: Optional[Union[str, URL]] = None,
    echo: Optional[bool] = None,
    pool_size: int = 5,
    max_overflow: int = 10,
    **engine_kwargs
) -> Engine:
    """
    Create SQLAlchemy engine.

    SQLite uses SQLAlchemy's single-connection pools, so pool_size and
    max_overflow are only passed for server backends.

    Args:
        url: Connection URL (defaults to config)
        echo: Enable SQL statement logging (defaults to config.db_echo)
        pool_size: Connection pool size for server backends
        max_overflow: Maximum overflow connections for server backends
        **engine_kwargs: Extra keyword arguments for create_engine()

    Returns:
        Configured SQLAlchemy Engine

    Example:
        >>> engine = create_sqlalchemy_engine('sqlite://')
        >>> with engine.connect() as conn:
        ...     result = conn.execute(text("SELECT 1"))
    """
    connection_url = make_url(get_connection_string(url))
    options = dict(echo=config.db_echo if echo is None else echo)

    if connection_url.get_backend_name() != 'sqlite':
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True  # Verify connections before using
        )
    options.update(engine_kwargs)

    logger.debug(f"Creating engine for {connection_url.render_as_string(hide_password=True)}")
    return create_engine(connection_url, **options)


def check_database_available(engine: Engine) -> bool:
    """
    Check if the database behind engine answers a trivial query.

    Args:
        engine: SQLAlchemy engine to check

    Returns:
        True if database is available, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.debug(f"Database not available: {e}")
        return False


def wait_for_database(
    engine: Engine,
    max_retries: int = 10,
    retry_delay: float = 2
) -> bool:
    """
    Wait for the database to become available with retries.

    Args:
        engine: SQLAlchemy engine to check
        max_retries: Maximum number of attempts
        retry_delay: Delay between attempts in seconds

    Returns:
        True once the database answered

    Raises:
        DatabaseConnectionError: If database never becomes available
    """
    target = engine.url.render_as_string(hide_password=True)
    logger.info(f"Waiting for database at {target}...")

    for attempt in range(1, max_retries + 1):
        if check_database_available(engine):
            logger.info(f"✅ Database is available (attempt {attempt}/{max_retries})")
            return True

        if attempt < max_retries:
            logger.warning(
                f"⏳ Database not available yet (attempt {attempt}/{max_retries}), "
                f"retrying in {retry_delay}s..."
            )
            time.sleep(retry_delay)

    error_msg = f"Database at {target} did not become available after {max_retries} attempts"
    logger.error(f"❌ {error_msg}")
    raise DatabaseConnectionError(error_msg)
