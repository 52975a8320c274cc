"""
Shared fixtures for sql/ package tests.

Key fixtures:
- db: Database over an in-memory SQLite connection, seeded with the
  three-row ``orders`` table.
- builder: unbound QueryBuilder for text-only assertions.
- mock_db: MagicMock standing in for the Database facade.
"""

from unittest.mock import MagicMock

import pytest

ORDERS_DDL = """
CREATE TABLE orders (
    id          INTEGER CONSTRAINT orders_pk PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL,
    product_id  INTEGER NOT NULL,
    price       REAL    NOT NULL,
    date_add    TEXT    NOT NULL
)
"""

SEED_ORDERS = [
    (1, 1, 1, 19.99, '2022-09-10'),
    (2, 1, 2, 14.99, '2022-10-08'),
    (3, 2, 1, 19.99, '2022-10-10'),
]


@pytest.fixture
def db():
    """
    Database over a fresh in-memory SQLite database with three orders.
    """
    from sql.database import Database

    database = Database.from_url('sqlite://')
    database.run(ORDERS_DDL)

    def seed(tx):
        for row in SEED_ORDERS:
            tx.insert(
                'INSERT INTO orders (id, customer_id, product_id, price, date_add) '
                'VALUES (?, ?, ?, ?, ?)',
                row
            )

    database.transaction(seed)
    yield database
    database.close()


@pytest.fixture
def builder():
    """QueryBuilder not bound to any database."""
    from sql.query_builder import QueryBuilder

    return QueryBuilder()


@pytest.fixture
def mock_db():
    """MagicMock Database; terminal operations record the builder they receive."""
    fake = MagicMock()
    fake.select.return_value = []
    fake.insert.return_value = True
    fake.update.return_value = 1
    fake.delete.return_value = 1
    return fake
