"""
==============================================
Execution facade over a SQLAlchemy connection.
==============================================

Database turns QueryBuilder output (or raw SQL text) into executed
statements and fetched records, and demarcates transactions on the single
connection it wraps.

Binding styles accepted by run() and the helpers built on it:
    - no bindings: the text is executed as-is
    - a mapping: named ``:name`` placeholders, executed through text();
      a ``:word`` whose name is not a mapping key stays literal text
    - a sequence: the driver's positional placeholders (``?`` for SQLite)

Outside an explicit transaction every statement is committed as soon as it
has run. A failing statement is rolled back there and its exception
propagates unchanged.

Example:
    >>> from sql.database import Database
    >>>
    >>> db = Database.from_url('sqlite://')
    >>> db.run('CREATE TABLE orders (id INTEGER PRIMARY KEY, price REAL)')
    >>> db.insert('INSERT INTO orders (price) VALUES (?)', [19.99])
    True
    >>> db.last_insert_id()
    1
    >>>
    >>> def place_orders(db):
    ...     db.from_('orders').insert([{'price': 4.99}, {'price': 9.99}])
    >>> db.transaction(place_orders)
    >>> db.from_('orders').count()
    3
"""

import logging
import re
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection, CursorResult, Engine, RootTransaction
from sqlalchemy.exc import SQLAlchemyError

from sql.query_builder import QueryBuilder
from utils.database_utils import create_sqlalchemy_engine, wait_for_database

logger = logging.getLogger(__name__)

T = TypeVar('T')
Bindings = Optional[Union[Mapping[str, Any], Sequence[Any]]]
Record = Dict[str, Any]

# Same shape text() recognizes as a bind parameter
BIND_PARAM = re.compile(r'(?<![:\w\\]):(\w+)(?!:)')


class TransactionError(Exception):
    """Exception raised for transaction demarcation misuse.

    Raised when a transaction is begun while another one is open, or when
    commit/rollback is requested without an open transaction.
    """
    pass


def escape_colons(sql: str, names: Iterable[str]) -> str:
    """
    Escape every ``:word`` that is not one of the given bind names.

    text() treats any ``:word`` as a bind parameter, including one inside a
    quoted identifier such as `note :x`. Escaped colons reach the driver as
    plain colons.

    Args:
        sql: SQL text with named placeholders
        names: Placeholder names that must stay bind parameters

    Returns:
        SQL text safe to pass to text()
    """
    names = set(names)

    def _escape(match: re.Match) -> str:
        if match.group(1) in names:
            return match.group(0)
        return '\\' + match.group(0)

    return BIND_PARAM.sub(_escape, sql)


class Database:
    """Execution facade wrapping one SQLAlchemy connection.

    Attributes:
        connection: The wrapped SQLAlchemy Connection

    Example:
        >>> engine = create_engine('sqlite://')
        >>> db = Database(engine.connect())
        >>> rows = db.from_('orders').where('customer_id', '=', 1).get()
        >>> affected = db.update('UPDATE orders SET price = ? WHERE id = ?', [9.99, 2])
    """

    def __init__(self, connection: Connection, engine: Optional[Engine] = None):
        """Wrap an open connection.

        Args:
            connection: Open SQLAlchemy Connection
            engine: Engine owned by this facade, disposed on close()
        """
        self._connection = connection
        self._engine = engine
        self._transaction: Optional[RootTransaction] = None
        self._last_insert_id: Optional[Any] = None

    @classmethod
    def from_url(cls, url: Union[str, URL], wait: bool = False, **engine_kwargs) -> 'Database':
        """
        Create an engine for url, connect, and wrap the connection.

        Args:
            url: SQLAlchemy URL
            wait: Block until the database answers (see wait_for_database)
            **engine_kwargs: Passed to create_sqlalchemy_engine()
        """
        engine = create_sqlalchemy_engine(url, **engine_kwargs)
        return cls._connect(engine, wait)

    @classmethod
    def from_config(cls, wait: bool = False, **engine_kwargs) -> 'Database':
        """Connect to the database described by core.config."""
        engine = create_sqlalchemy_engine(**engine_kwargs)
        return cls._connect(engine, wait)

    @classmethod
    def _connect(cls, engine: Engine, wait: bool) -> 'Database':
        if wait:
            wait_for_database(engine)
        return cls(engine.connect(), engine=engine)

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def connection(self) -> Connection:
        return self._connection

    def close(self) -> None:
        """Close the connection and dispose the owned engine, if any."""
        if self._transaction is not None:
            logger.warning("Closing database with an open transaction, rolling back")
            self._transaction.rollback()
            self._transaction = None
        self._connection.close()
        if self._engine is not None:
            self._engine.dispose()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def query(self) -> QueryBuilder:
        """Fresh QueryBuilder bound to this database."""
        return QueryBuilder(self)

    def from_(self, table: str, alias: Optional[str] = None) -> QueryBuilder:
        """Fresh QueryBuilder selecting from table."""
        return self.query().from_(table, alias)

    table = from_

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve(query: Union[str, QueryBuilder], bindings: Bindings) -> Tuple[str, Bindings]:
        if isinstance(query, QueryBuilder):
            return query.build()
        return query, bindings

    def _execute(self, sql: str, bindings: Bindings) -> CursorResult:
        logger.debug(f"Executing: {sql} | bindings={bindings!r}")
        try:
            if not bindings:
                result = self._connection.exec_driver_sql(sql)
            elif isinstance(bindings, Mapping):
                result = self._connection.execute(text(escape_colons(sql, bindings)), dict(bindings))
            else:
                result = self._connection.exec_driver_sql(sql, tuple(bindings))
        except SQLAlchemyError as e:
            logger.error(f"Statement failed: {e}")
            if self._transaction is None:
                self._connection.rollback()
            raise

        if not result.returns_rows and result.lastrowid:
            self._last_insert_id = result.lastrowid
        return result

    def _autocommit(self) -> None:
        if self._transaction is None:
            self._connection.commit()

    def run(self, query: Union[str, QueryBuilder], bindings: Bindings = None) -> CursorResult:
        """
        Execute a builder or raw SQL text.

        A QueryBuilder is built first and its own bindings are used.

        Args:
            query: QueryBuilder or SQL text
            bindings: Named (mapping) or positional (sequence) bindings for raw text

        Returns:
            SQLAlchemy CursorResult of the executed statement
        """
        sql, bindings = self._resolve(query, bindings)
        result = self._execute(sql, bindings)
        self._autocommit()
        return result

    def select(self, query: Union[str, QueryBuilder], bindings: Bindings = None) -> List[Record]:
        """Execute and fetch every row as a column name -> value dict."""
        sql, bindings = self._resolve(query, bindings)
        result = self._execute(sql, bindings)
        rows = [dict(row) for row in result.mappings()]
        self._autocommit()
        return rows

    def insert(self, query: Union[str, QueryBuilder], bindings: Bindings = None) -> bool:
        """Execute an INSERT; True when at least one row was written."""
        return self.run(query, bindings).rowcount > 0

    def update(self, query: Union[str, QueryBuilder], bindings: Bindings = None) -> int:
        """Execute an UPDATE; returns affected rows."""
        return self.run(query, bindings).rowcount

    def delete(self, query: Union[str, QueryBuilder], bindings: Bindings = None) -> int:
        """Execute a DELETE; returns affected rows."""
        return self.run(query, bindings).rowcount

    def last_insert_id(self) -> Optional[Any]:
        """Identifier generated by the last INSERT, or None if unavailable."""
        return self._last_insert_id

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def begin_transaction(self) -> bool:
        """Open a transaction. Nested transactions are not supported."""
        if self._transaction is not None or self._connection.in_transaction():
            raise TransactionError('A transaction is already active, nested transactions are not supported.')

        self._transaction = self._connection.begin()
        logger.info("Transaction started")
        return True

    def commit(self) -> bool:
        if self._transaction is None:
            raise TransactionError('No active transaction to commit.')

        transaction, self._transaction = self._transaction, None
        transaction.commit()
        logger.info("Transaction committed")
        return True

    def roll_back(self) -> bool:
        if self._transaction is None:
            raise TransactionError('No active transaction to roll back.')

        transaction, self._transaction = self._transaction, None
        transaction.rollback()
        logger.warning("Transaction rolled back")
        return True

    rollback = roll_back

    @contextmanager
    def transactional(self) -> Iterator['Database']:
        """Context manager committing on success and rolling back on any exception."""
        self.begin_transaction()
        try:
            yield self
        except BaseException as e:
            logger.error(f"Transaction failed, rolling back: {e!r}")
            try:
                self.roll_back()
            except (SQLAlchemyError, TransactionError) as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise
        self.commit()

    def transaction(self, callback: Callable[['Database'], T]) -> T:
        """
        Run callback(self) inside a transaction.

        Commits when the callback returns. On any exception the transaction
        is rolled back and the original exception is re-raised.

        Args:
            callback: Callable receiving this Database

        Returns:
            Whatever the callback returned
        """
        with self.transactional():
            return callback(self)
