"""
=============================
Fluent SQL Statement Builder.
=============================

This module provides QueryBuilder, a chainable builder that accumulates
clause fragments and assembles one of four statement shapes:

- SELECT <projection> FROM <tables> [joins] [WHERE] [GROUP BY] [HAVING]
  [ORDER BY] [LIMIT]
- INSERT INTO <table> (<columns>) VALUES (...), (...)
- UPDATE <table> SET <column> = :p, ... [WHERE]
- DELETE FROM <tables> [WHERE] [LIMIT]

Identifiers are quoted with backticks. Every bound value, whether it comes
from a predicate, an inserted row or an update assignment, gets its own
named placeholder (``:abcde``) so a statement never mixes placeholder styles.

Clause methods mutate the builder in place and return it. Terminal helpers
(value, count, max, ...) work on a copy, and build() never mutates the
builder, so running the same builder twice never duplicates bindings.

Usage:
    from sql.database import Database

    db = Database.from_url('sqlite://')

    # Build only
    sql, bindings = (
        db.from_('orders', 'o')
          .select_aliased('o', 'id', 'price')
          .where('product_id', '=', 1)
          .order_by('price', 'DESC')
          .limit(10)
          .build()
    )

    # Build and execute
    rows = db.from_('orders').where('customer_id', '=', 1).get()
    total = db.from_('orders').sum('price')
    db.from_('orders').insert({'customer_id': 3, 'product_id': 3, 'price': 4.99})
"""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sql.identifiers import BindingNameGenerator, qualify, quote_identifier

if TYPE_CHECKING:
    from sql.database import Database

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = ('=', '!=', '<>', '<', '<=', '>', '>=', 'LIKE')
SORT_DIRECTIONS = ('ASC', 'DESC')


class QueryBuilderError(Exception):
    """Exception raised when a statement cannot be assembled.

    Base class for every validation error raised by QueryBuilder clause
    methods and build().
    """
    pass


class InvalidStatementKind(QueryBuilderError):
    """Statement kind outside SELECT/INSERT/UPDATE/DELETE."""

    def __init__(self, given: str, allowed: Sequence[str]):
        self.given = given
        self.allowed = tuple(allowed)
        super().__init__(f'Unknown type "{given}", expected one of: {", ".join(self.allowed)}.')


class MissingBaseTable(QueryBuilderError):
    """build() called before any table was added with from_()."""

    def __init__(self):
        super().__init__('Table name missing in query builder, cannot build the SQL query.')


class InvalidComparisonOperator(QueryBuilderError):
    """Predicate operator not in COMPARISON_OPERATORS."""

    def __init__(self, given: str, allowed: Sequence[str]):
        self.given = given
        self.allowed = tuple(allowed)
        super().__init__(f'Unknown operand "{given}", expected one of: {", ".join(self.allowed)}.')


class InvalidSortDirection(QueryBuilderError):
    """ORDER BY direction other than ASC or DESC."""

    def __init__(self, given: str, allowed: Sequence[str]):
        self.given = given
        self.allowed = tuple(allowed)
        super().__init__(f'Unknown direction "{given}", expected one of: {", ".join(self.allowed)}.')


class InvalidProjectionShape(QueryBuilderError):
    """Projection entry that is neither a column name nor a ColumnRef."""

    def __init__(self, given: Any):
        self.given = given
        super().__init__(
            f'Wrong select provided ({type(given).__name__}), '
            f'must be a column name string or a ColumnRef.'
        )


class InvalidLimit(QueryBuilderError):
    """Negative LIMIT count."""

    def __init__(self, given: int):
        self.given = given
        super().__init__(f'Limit must be zero or positive, got {given}.')


class InconsistentInsertRows(QueryBuilderError):
    """Insert row whose columns differ from the first row's columns."""

    def __init__(self, expected: Sequence[str], given: Sequence[str]):
        self.expected = list(expected)
        self.given = list(given)
        super().__init__(
            f'Insert row columns {self.given} do not match first row columns {self.expected}.'
        )


class StatementKind(str, Enum):
    """Top-level SQL operation a builder emits."""

    SELECT = 'SELECT'
    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'

    @classmethod
    def parse(cls, value: Union[str, 'StatementKind']) -> 'StatementKind':
        """Case-insensitive lookup; raises InvalidStatementKind on anything else."""
        if isinstance(value, cls):
            return value
        normalized = str(value).upper()
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidStatementKind(value, [kind.value for kind in cls]) from None


@dataclass(frozen=True)
class ColumnRef:
    """Projection/grouping entry.

    Attributes:
        column: Column name, or an SQL expression when raw is True
        table: Optional table name or alias qualifier
        raw: Emit column verbatim (aggregates, expressions)
    """

    column: str
    table: Optional[str] = None
    raw: bool = False

    def render(self) -> str:
        if self.raw:
            return self.column
        return qualify(self.column, self.table)


@dataclass(frozen=True)
class TableRef:
    """Source table with optional alias.

    FROM lists render the alias bare (`t` `a`); an UPDATE target needs the
    AS keyword, which SQLite requires there.
    """

    name: str
    alias: Optional[str] = None

    def render(self, with_as: bool = False) -> str:
        if self.alias:
            separator = ' AS ' if with_as else ' '
            return f"{quote_identifier(self.name)}{separator}{quote_identifier(self.alias)}"
        return quote_identifier(self.name)


@dataclass(frozen=True)
class Predicate:
    """Rendered WHERE/HAVING fragment and the value behind its placeholder."""

    text: str
    name: str
    value: Any


@dataclass(frozen=True)
class OrderSpec:
    """ORDER BY entry."""

    column: ColumnRef
    direction: str = 'ASC'

    def render(self) -> str:
        return f"{self.column.render()} {self.direction}"


@dataclass(frozen=True)
class LimitSpec:
    """LIMIT/OFFSET pair; limit 0 means no LIMIT clause."""

    limit: int = 0
    offset: int = 0

    def render(self) -> str:
        if not self.limit:
            return ''
        if self.offset:
            return f"LIMIT {self.offset}, {self.limit}"
        return f"LIMIT {self.limit}"


ColumnLike = Union[str, ColumnRef]


def _column_ref(column: ColumnLike, table: Optional[str] = None) -> ColumnRef:
    """Normalize a projection entry into a ColumnRef."""
    if isinstance(column, ColumnRef):
        return column
    if isinstance(column, str):
        return ColumnRef(column=column, table=table)
    raise InvalidProjectionShape(column)


class QueryBuilder:
    """Chainable SQL statement builder.

    Holds the clause fragments of one statement and, when bound to a
    Database, executes it through the terminal helpers.

    Attributes:
        db: Execution facade used by terminal operations (optional when
            only build() is needed)

    Example:
        >>> query = QueryBuilder()
        >>> sql, bindings = query.from_('orders').where('id', '=', 3).build()
        >>> sql
        'SELECT * FROM `orders` WHERE (`id` = :kqwzr)'  # placeholder name varies
    """

    def __init__(self, db: Optional['Database'] = None):
        self.db = db
        self._kind = StatementKind.SELECT
        self._select: List[ColumnRef] = []
        self._from: List[TableRef] = []
        self._join: List[str] = []
        self._where: List[Predicate] = []
        self._group: List[ColumnRef] = []
        self._having: List[Predicate] = []
        self._order: List[OrderSpec] = []
        self._limit = LimitSpec()
        self._insert_columns: List[str] = []
        self._insert_rows: List[List[str]] = []
        self._assignments: List[Tuple[str, str]] = []
        self._values: Dict[str, Any] = {}
        self._names = BindingNameGenerator()

    def __str__(self) -> str:
        return self.build()[0]

    def __repr__(self) -> str:
        tables = ', '.join(table.name for table in self._from) or '-'
        return f"<QueryBuilder {self._kind.value} {tables}>"

    # ------------------------------------------------------------------
    # Clause methods
    # ------------------------------------------------------------------

    @property
    def kind(self) -> StatementKind:
        """Statement kind that build() will emit."""
        return self._kind

    def type(self, kind: Union[str, StatementKind]) -> 'QueryBuilder':
        """Set the statement kind (case-insensitive)."""
        self._kind = StatementKind.parse(kind)
        return self

    def select(self, *columns: ColumnLike) -> 'QueryBuilder':
        """Replace the projection list. No columns keeps the current one."""
        if columns:
            self._select = [_column_ref(column) for column in columns]
        return self

    def add_select(self, *columns: ColumnLike) -> 'QueryBuilder':
        """Append columns to the projection list."""
        refs = [_column_ref(column) for column in columns]
        self._select.extend(refs)
        return self

    def select_aliased(self, alias: str, *columns: ColumnLike) -> 'QueryBuilder':
        """Replace the projection with columns qualified by alias."""
        if columns:
            self._select = [_column_ref(column, alias) for column in columns]
        return self

    def from_(self, table: str, alias: Optional[str] = None) -> 'QueryBuilder':
        """Append a source table. An empty name is ignored."""
        if table:
            self._from.append(TableRef(name=table, alias=alias or None))
        return self

    table = from_

    def _join_clause(
        self,
        join_type: str,
        table: str,
        alias: Optional[str] = None,
        on: Optional[str] = None
    ) -> 'QueryBuilder':
        parts = [join_type, TableRef(table, alias or None).render()]
        if on:
            parts.append(f"ON {on}")
        self._join.append(' '.join(parts))
        return self

    def left_join(self, table: str, alias: Optional[str] = None, on: Optional[str] = None) -> 'QueryBuilder':
        return self._join_clause('LEFT JOIN', table, alias, on)

    def inner_join(self, table: str, alias: Optional[str] = None, on: Optional[str] = None) -> 'QueryBuilder':
        return self._join_clause('INNER JOIN', table, alias, on)

    def left_outer_join(self, table: str, alias: Optional[str] = None, on: Optional[str] = None) -> 'QueryBuilder':
        return self._join_clause('LEFT OUTER JOIN', table, alias, on)

    def right_join(self, table: str, alias: Optional[str] = None, on: Optional[str] = None) -> 'QueryBuilder':
        return self._join_clause('RIGHT JOIN', table, alias, on)

    def natural_join(self, table: str, alias: Optional[str] = None) -> 'QueryBuilder':
        return self._join_clause('NATURAL JOIN', table, alias)

    def _predicate(self, target: List[Predicate], column: ColumnRef, operator: str, value: Any) -> None:
        normalized = str(operator).upper()
        if normalized not in COMPARISON_OPERATORS:
            raise InvalidComparisonOperator(operator, COMPARISON_OPERATORS)

        name = self._names.generate()
        target.append(Predicate(f"{column.render()} {normalized} :{name}", name, value))

    def where(self, column: ColumnLike, operator: str, value: Any) -> 'QueryBuilder':
        """Add an AND-ed WHERE predicate bound to a fresh placeholder."""
        self._predicate(self._where, _column_ref(column), operator, value)
        return self

    def where_aliased(self, alias: str, column: str, operator: str, value: Any) -> 'QueryBuilder':
        self._predicate(self._where, _column_ref(column, alias), operator, value)
        return self

    def having(self, column: ColumnLike, operator: str, value: Any) -> 'QueryBuilder':
        """Add an AND-ed HAVING predicate bound to a fresh placeholder."""
        self._predicate(self._having, _column_ref(column), operator, value)
        return self

    def having_aliased(self, alias: str, column: str, operator: str, value: Any) -> 'QueryBuilder':
        self._predicate(self._having, _column_ref(column, alias), operator, value)
        return self

    def _add_order(self, column: ColumnRef, direction: str) -> None:
        normalized = str(direction).upper()
        if normalized not in SORT_DIRECTIONS:
            raise InvalidSortDirection(direction, SORT_DIRECTIONS)
        self._order.append(OrderSpec(column, normalized))

    def order_by(self, column: ColumnLike, direction: str = 'ASC') -> 'QueryBuilder':
        self._add_order(_column_ref(column), direction)
        return self

    def order_by_aliased(self, alias: str, column: str, direction: str = 'ASC') -> 'QueryBuilder':
        self._add_order(_column_ref(column, alias), direction)
        return self

    def group_by(self, *columns: ColumnLike) -> 'QueryBuilder':
        refs = [_column_ref(column) for column in columns]
        self._group.extend(refs)
        return self

    def group_by_aliased(self, alias: str, *columns: str) -> 'QueryBuilder':
        refs = [_column_ref(column, alias) for column in columns]
        self._group.extend(refs)
        return self

    def limit(self, count: int, offset: int = 0) -> 'QueryBuilder':
        """Set LIMIT/OFFSET. A count of 0 removes the LIMIT clause."""
        if count < 0:
            raise InvalidLimit(count)
        self._limit = LimitSpec(limit=count, offset=max(0, offset))
        return self

    def values(self, rows: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> 'QueryBuilder':
        """
        Stage rows for an INSERT statement and switch the kind to INSERT.

        A single mapping is treated as a one-row batch. Every row must carry
        exactly the columns of the first row; values are bound in first-row
        column order.

        Args:
            rows: One row mapping or a sequence of row mappings

        Returns:
            This builder
        """
        if isinstance(rows, Mapping):
            rows = [rows]
        rows = list(rows)
        if not rows:
            raise QueryBuilderError('No rows provided for INSERT statement.')

        columns = list(rows[0].keys())
        for row in rows[1:]:
            if set(row.keys()) != set(columns):
                raise InconsistentInsertRows(columns, list(row.keys()))

        self._drop_values()
        self._insert_columns = columns
        self._insert_rows = [[self._bind_value(row[column]) for column in columns] for row in rows]
        self._kind = StatementKind.INSERT
        return self

    def assign(self, assignments: Mapping[str, Any]) -> 'QueryBuilder':
        """Stage SET assignments for an UPDATE statement and switch the kind to UPDATE."""
        if not assignments:
            raise QueryBuilderError('No assignments provided for UPDATE statement.')

        self._drop_values()
        self._assignments = [(column, self._bind_value(value)) for column, value in assignments.items()]
        self._kind = StatementKind.UPDATE
        return self

    def _bind_value(self, value: Any) -> str:
        name = self._names.generate()
        self._values[name] = value
        return name

    def _drop_values(self) -> None:
        self._values = {}
        self._insert_columns = []
        self._insert_rows = []
        self._assignments = []

    def copy(self) -> 'QueryBuilder':
        """Independent builder with the same clauses, bound to the same database."""
        clone = copy.copy(self)
        clone._select = list(self._select)
        clone._from = list(self._from)
        clone._join = list(self._join)
        clone._where = list(self._where)
        clone._group = list(self._group)
        clone._having = list(self._having)
        clone._order = list(self._order)
        clone._insert_columns = list(self._insert_columns)
        clone._insert_rows = [list(row) for row in self._insert_rows]
        clone._assignments = list(self._assignments)
        clone._values = dict(self._values)
        clone._names = self._names.copy()
        return clone

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def build(self) -> Tuple[str, Dict[str, Any]]:
        """
        Assemble SQL text and its bindings.

        Returns:
            Tuple of (sql, bindings) where bindings maps placeholder names to
            values in emission order

        Raises:
            MissingBaseTable: If no table was added
            QueryBuilderError: If an INSERT/UPDATE has nothing to write
        """
        if not self._from:
            raise MissingBaseTable()

        builders = {
            StatementKind.SELECT: self._build_select,
            StatementKind.INSERT: self._build_insert,
            StatementKind.UPDATE: self._build_update,
            StatementKind.DELETE: self._build_delete,
        }
        sql, bindings = builders[self._kind]()

        logger.debug(f"Built {self._kind.value} statement: {sql}")
        return sql, bindings

    @property
    def sql(self) -> str:
        return self.build()[0]

    @property
    def bindings(self) -> Dict[str, Any]:
        return self.build()[1]

    def _tables(self) -> str:
        return ', '.join(table.render() for table in self._from)

    @staticmethod
    def _conditions(keyword: str, predicates: List[Predicate], bindings: Dict[str, Any]) -> str:
        for predicate in predicates:
            bindings[predicate.name] = predicate.value
        return f"{keyword} (" + ') AND ('.join(p.text for p in predicates) + ')'

    def _build_select(self) -> Tuple[str, Dict[str, Any]]:
        bindings: Dict[str, Any] = {}
        projection = ', '.join(column.render() for column in self._select) or '*'
        parts = [f"SELECT {projection}", f"FROM {self._tables()}"]
        parts.extend(self._join)

        if self._where:
            parts.append(self._conditions('WHERE', self._where, bindings))
        if self._group:
            parts.append('GROUP BY ' + ', '.join(column.render() for column in self._group))
        if self._having:
            parts.append(self._conditions('HAVING', self._having, bindings))
        if self._order:
            parts.append('ORDER BY ' + ', '.join(order.render() for order in self._order))
        if self._limit.limit:
            parts.append(self._limit.render())

        return ' '.join(parts), bindings

    def _build_insert(self) -> Tuple[str, Dict[str, Any]]:
        if not self._insert_rows:
            raise QueryBuilderError('No rows staged for INSERT statement.')

        bindings: Dict[str, Any] = {}
        tuples = []
        for row in self._insert_rows:
            tuples.append('(' + ', '.join(f":{name}" for name in row) + ')')
            bindings.update((name, self._values[name]) for name in row)

        columns = ', '.join(quote_identifier(column) for column in self._insert_columns)
        sql = f"INSERT INTO {quote_identifier(self._from[0].name)} ({columns}) VALUES {', '.join(tuples)}"
        return sql, bindings

    def _build_update(self) -> Tuple[str, Dict[str, Any]]:
        if not self._assignments:
            raise QueryBuilderError('No assignments staged for UPDATE statement.')

        bindings: Dict[str, Any] = {}
        sets = []
        for column, name in self._assignments:
            sets.append(f"{quote_identifier(column)} = :{name}")
            bindings[name] = self._values[name]

        parts = [f"UPDATE {self._from[0].render(with_as=True)}", 'SET ' + ', '.join(sets)]
        if self._where:
            parts.append(self._conditions('WHERE', self._where, bindings))
        return ' '.join(parts), bindings

    def _build_delete(self) -> Tuple[str, Dict[str, Any]]:
        bindings: Dict[str, Any] = {}
        parts = [f"DELETE FROM {self._tables()}"]
        if self._where:
            parts.append(self._conditions('WHERE', self._where, bindings))
        if self._limit.limit:
            parts.append(self._limit.render())
        return ' '.join(parts), bindings

    # ------------------------------------------------------------------
    # Terminal operations
    # ------------------------------------------------------------------

    def _require_db(self) -> 'Database':
        if self.db is None:
            raise QueryBuilderError('Query builder is not bound to a database, cannot execute.')
        return self.db

    def get(self) -> List[Dict[str, Any]]:
        """Execute and return every record."""
        return self._require_db().select(self)

    def first(self) -> Optional[Dict[str, Any]]:
        """Execute and return the first record, or None."""
        rows = self.get()
        return rows[0] if rows else None

    def value(self, column: Optional[str] = None) -> Any:
        """
        Return one column of the first record (implicit LIMIT 1).

        Args:
            column: Column name to read; defaults to the first column

        Returns:
            The value, or None when no row matched
        """
        query = self.copy()
        query._limit = LimitSpec(limit=1, offset=self._limit.offset)
        row = query.first()
        if row is None:
            return None
        if column is None:
            return next(iter(row.values()), None)
        return row.get(column)

    def find(self, identifier: Any, column: str = 'id') -> Optional[Dict[str, Any]]:
        """Return the record whose column (default ``id``) equals identifier."""
        return self.copy().where(column, '=', identifier).first()

    def _aggregate(self, function: str, column: str, table: Optional[str] = None) -> Any:
        """Run FUNC(column) over every matching row; LIMIT/OFFSET are ignored."""
        expression = f"{function}({qualify(column, table)}) AS aggregate"
        query = self.copy()
        query._kind = StatementKind.SELECT
        query._select = [ColumnRef(expression, raw=True)]
        query._limit = LimitSpec()
        return query.value('aggregate')

    def count(self, column: str = '*', table: Optional[str] = None) -> int:
        return int(self._aggregate('COUNT', column, table) or 0)

    def max(self, column: str, table: Optional[str] = None) -> Any:
        return self._aggregate('MAX', column, table)

    def min(self, column: str, table: Optional[str] = None) -> Any:
        return self._aggregate('MIN', column, table)

    def avg(self, column: str, table: Optional[str] = None) -> Any:
        return self._aggregate('AVG', column, table)

    def sum(self, column: str, table: Optional[str] = None) -> Any:
        return self._aggregate('SUM', column, table)

    def insert(self, rows: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> bool:
        """Stage rows and execute the INSERT. Returns True if any row was written."""
        return self._require_db().insert(self.values(rows))

    def update(self, assignments: Mapping[str, Any]) -> int:
        """Stage assignments and execute the UPDATE. Returns affected rows."""
        return self._require_db().update(self.assign(assignments))

    def delete(self) -> int:
        """Execute a DELETE over the current tables/predicates. Returns affected rows."""
        self._kind = StatementKind.DELETE
        return self._require_db().delete(self)
