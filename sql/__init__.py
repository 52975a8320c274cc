"""
=================================================
SQL statement building and execution for dbquery.
=================================================

This package provides a fluent statement builder and a thin execution
facade over a SQLAlchemy connection.

The package follows a clear organization:
    - identifiers.py: backtick identifier quoting and placeholder names
    - query_builder.py: QueryBuilder and its validation errors
    - database.py: Database facade (run/select/insert/update/delete,
      transactions)

Architecture:
    - query_builder.py depends only on identifiers.py
    - database.py imports query_builder.py (not vice versa)
    - Every builder-generated binding uses a named ``:abcde`` placeholder

Example:
    >>> from sql import Database
    >>>
    >>> db = Database.from_url('sqlite://')
    >>> orders = (
    ...     db.from_('orders', 'o')
    ...       .where_aliased('o', 'product_id', '=', 1)
    ...       .order_by_aliased('o', 'date_add', 'DESC')
    ...       .get()
    ... )
"""

__version__ = "1.0.0"
__all__ = [
    # Identifiers
    'quote_identifier', 'BindingNameGenerator',
    # Builder
    'QueryBuilder', 'StatementKind', 'ColumnRef', 'TableRef',
    'QueryBuilderError', 'InvalidStatementKind', 'MissingBaseTable',
    'InvalidComparisonOperator', 'InvalidSortDirection',
    'InvalidProjectionShape', 'InvalidLimit', 'InconsistentInsertRows',
    # Execution
    'Database', 'TransactionError'
]

from .database import Database, TransactionError
from .identifiers import BindingNameGenerator, quote_identifier
from .query_builder import (
    ColumnRef,
    InconsistentInsertRows,
    InvalidComparisonOperator,
    InvalidLimit,
    InvalidProjectionShape,
    InvalidSortDirection,
    InvalidStatementKind,
    MissingBaseTable,
    QueryBuilder,
    QueryBuilderError,
    StatementKind,
    TableRef,
)
