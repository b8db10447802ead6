"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the schema engine talks to.
All query methods are ``async def`` -- the library is async-first.

Usage:
    from sqlite_schema.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch_all("SELECT name FROM sqlite_master")
        async with client.transaction() as trx:
            await trx.execute("CREATE TABLE t (id INTEGER)")
            await trx.execute("INSERT INTO t (id) VALUES (?)", [1])
        await client.close()
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface the schema engine depends on.

    The engine only needs three capabilities: execute raw SQL, read rows
    back as dicts, and run a block of statements in one transaction that
    rolls back if the block raises.
    """

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a raw SQL statement (DDL, DML or PRAGMA writes).

        Args:
            sql: Raw SQL statement.  Exactly one statement per call.
            params: Optional positional (``?``) parameters.

        Example:
            await client.execute('ALTER TABLE "t" ADD COLUMN "name" TEXT;')
        """
        ...

    async def fetch_all(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict.

        Args:
            sql: Raw SQL query.
            params: Optional positional (``?``) parameters.

        Returns:
            List of dicts keyed by column name.  Empty list if no rows.

        Example:
            rows = await client.fetch_all(
                "SELECT * FROM pragma_table_info(?)", ["users"]
            )
        """
        ...

    def transaction(self) -> AbstractAsyncContextManager["DatabaseClient"]:
        """Open a transaction and yield a client bound to it.

        Commits when the block exits normally and rolls back when it
        raises.  Calling ``transaction()`` on a transaction-bound client
        opens a savepoint instead.

        Example:
            async with client.transaction() as trx:
                await trx.execute('DROP TABLE IF EXISTS "old";')
        """
        ...

    async def close(self) -> None:
        """Close the connection and release resources."""
        ...
