"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async SQLite adapter
implementation.

Usage:
    from sqlite_schema.adapters import DatabaseClient, AsyncSqliteAdapter
"""

from sqlite_schema.adapters.base import DatabaseClient
from sqlite_schema.adapters.sqlite import (
    AsyncSqliteAdapter,
    TransactionClient,
    normalize_sqlite_url,
)

__all__ = [
    "DatabaseClient",
    "AsyncSqliteAdapter",
    "TransactionClient",
    "normalize_sqlite_url",
]
