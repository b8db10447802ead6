"""Async SQLite database adapter.

Provides ``AsyncSqliteAdapter``, an async implementation of the
``DatabaseClient`` protocol using SQLAlchemy's async engine with the
``aiosqlite`` driver.

Usage:
    from sqlite_schema.adapters.sqlite import AsyncSqliteAdapter

    adapter = AsyncSqliteAdapter(
        "sqlite:///app.db",
        pragmas={"journal_mode": "WAL", "foreign_keys": "ON"},
    )

    rows = await adapter.fetch_all("SELECT name FROM sqlite_master")
    await adapter.close()
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

_ASYNC_SCHEME = "sqlite+aiosqlite://"


def normalize_sqlite_url(database_url: str) -> str:
    """Normalize a database URL or file path to ``sqlite+aiosqlite://``.

    Accepts ``sqlite://`` URLs, ``sqlite+aiosqlite://`` URLs, plain file
    paths, and ``:memory:``.

    Example:
        >>> normalize_sqlite_url("sqlite:///app.db")
        'sqlite+aiosqlite:///app.db'
        >>> normalize_sqlite_url("/var/data/app.db")
        'sqlite+aiosqlite:////var/data/app.db'
        >>> normalize_sqlite_url(":memory:")
        'sqlite+aiosqlite://'
    """
    if database_url.startswith(_ASYNC_SCHEME):
        return database_url
    if database_url.startswith("sqlite://"):
        return _ASYNC_SCHEME + database_url[len("sqlite://"):]
    if "://" in database_url:
        raise ValueError(f"Not a SQLite database URL: {database_url}")
    if database_url in ("", ":memory:"):
        return _ASYNC_SCHEME
    return f"{_ASYNC_SCHEME}/{database_url}"


def _to_params(params: Sequence[Any] | None) -> tuple[Any, ...]:
    return tuple(params) if params else ()


def create_async_engine_sqlite(
    database_url: str,
    pragmas: dict[str, Any] | None = None,
    **kwargs: Any,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine for SQLite with transactional DDL.

    The ``sqlite3`` module only opens implicit transactions before DML,
    so DDL would otherwise run in autocommit mode.  The engine disables
    the driver's own transaction handling on connect and emits ``BEGIN``
    itself whenever SQLAlchemy starts a transaction, which makes
    ``CREATE``/``ALTER``/``DROP`` statements roll back with everything
    else.  ``SAVEPOINT`` works the same way.

    Args:
        database_url: URL with ``sqlite+aiosqlite://`` scheme.
        pragmas: Optional ``PRAGMA name = value`` pairs applied to every
            new DBAPI connection (e.g. ``{"journal_mode": "WAL"}``).
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Returns:
        Configured ``AsyncEngine``.
    """
    defaults: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}
    engine = create_async_engine(database_url, **merged)
    connect_pragmas = dict(pragmas or {})

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Disable the driver's implicit BEGIN; _on_begin emits our own
        dbapi_connection.isolation_level = None
        if connect_pragmas:
            cursor = dbapi_connection.cursor()
            for pragma, value in connect_pragmas.items():
                cursor.execute(f"PRAGMA {pragma} = {value}")
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


async def _fetch_all(
    conn: AsyncConnection, sql: str, params: Sequence[Any] | None
) -> list[dict[str, Any]]:
    result = await conn.exec_driver_sql(sql, _to_params(params))
    if not result.returns_rows:
        return []
    col_names = list(result.keys())
    rows = result.fetchall()
    return [dict(zip(col_names, row)) for row in rows]


class TransactionClient:
    """``DatabaseClient`` bound to one open transaction.

    Yielded by ``AsyncSqliteAdapter.transaction()``.  Statements run on
    the same connection; nested ``transaction()`` calls use savepoints.
    """

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        await self._conn.exec_driver_sql(sql, _to_params(params))

    async def fetch_all(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        return await _fetch_all(self._conn, sql, params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["TransactionClient"]:
        """Run the block inside a ``SAVEPOINT``.

        The savepoint is released on success and rolled back when the
        block raises; the outer transaction stays open either way.
        """
        async with self._conn.begin_nested():
            yield self

    async def close(self) -> None:
        """No-op: the owning adapter closes the connection."""


class AsyncSqliteAdapter:
    """Async SQLite implementation of the ``DatabaseClient`` protocol.

    Uses SQLAlchemy's async engine with the ``aiosqlite`` driver.  Every
    ``execute()`` call commits on its own; use ``transaction()`` to group
    statements atomically.

    Args:
        database_url: ``sqlite://`` or ``sqlite+aiosqlite://`` URL, a
            plain file path, or ``:memory:``.  Normalized to
            ``sqlite+aiosqlite://`` automatically.
        pragmas: Optional pragmas applied to every new connection.
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine_sqlite``.

    Example:
        adapter = AsyncSqliteAdapter("sqlite:///app.db")
        async with adapter.transaction() as trx:
            await trx.execute('CREATE TABLE "t" ("id" INTEGER);')
        await adapter.close()
    """

    def __init__(
        self,
        database_url: str,
        pragmas: dict[str, Any] | None = None,
        **engine_kwargs: Any,
    ) -> None:
        self._database_url = normalize_sqlite_url(database_url)
        self._engine: AsyncEngine = create_async_engine_sqlite(
            self._database_url, pragmas, **engine_kwargs
        )

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Query Methods
    # ------------------------------------------------------------------

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a raw SQL statement in its own transaction.

        Uses ``engine.begin()`` for automatic commit on success, rollback
        on error.

        Example:
            await adapter.execute("PRAGMA user_version = 3")
        """
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql(sql, _to_params(params))

    async def fetch_all(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a query and return all rows as dicts."""
        async with self._engine.connect() as conn:
            return await _fetch_all(conn, sql, params)

    async def execute_autocommit(self, sql: str) -> None:
        """Execute a statement outside any transaction.

        Needed for statements SQLite refuses inside ``BEGIN``, such as
        ``VACUUM`` or switching ``journal_mode`` to ``WAL``.
        """
        async with self._engine.connect() as conn:
            raw = await conn.get_raw_connection()
            cursor = await raw.driver_connection.execute(sql)
            await cursor.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionClient]:
        """Open one transaction for the duration of the block.

        Commits when the block exits normally, rolls back when it raises.
        """
        async with self._engine.begin() as conn:
            yield TransactionClient(conn)

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()

    # ------------------------------------------------------------------
    # Connection Test
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """Test database connection health.

        Runs ``SELECT 1`` via the async engine to verify the database file
        can be opened.

        Returns:
            ``True`` if the database connection succeeds.

        Raises:
            Exception: If the database cannot be opened.
        """
        rows = await self.fetch_all("SELECT 1 AS ok")
        return bool(rows) and rows[0]["ok"] == 1
