"""
Utility modules for dbquery.

Modules:
    database_utils: Engine creation, availability checks and retries
"""

__all__ = [
    'DatabaseConnectionError',
    'check_database_available',
    'create_sqlalchemy_engine',
    'get_connection_string',
    'wait_for_database',
]

from .database_utils import (
    DatabaseConnectionError,
    check_database_available,
    create_sqlalchemy_engine,
    get_connection_string,
    wait_for_database,
)
