"""Schema synchronization (async).

Brings a live SQLite database in line with a target schema in one pass:

1. optional ``PRAGMA integrity_check``
2. version gate on ``PRAGMA user_version`` (skip, or bump before diffing)
3. introspect the existing schema
4. diff it against the target and generate the ordered statement list
5. execute every statement inside one transaction

``sync_tables()`` never raises: every failure is returned as
``SyncResult(ready=False, error=...)`` and handed to the ``on_sync_fail``
callback.

Usage:
    from sqlite_schema.adapters import AsyncSqliteAdapter
    from sqlite_schema.config import SyncOptions, VersionOptions
    from sqlite_schema.schema.sync import sync_tables

    adapter = AsyncSqliteAdapter("sqlite:///app.db")
    result = await sync_tables(
        adapter,
        {"users": users},
        SyncOptions(version=VersionOptions(current=3, skip_sync_when_same=True)),
    )
    if not result.ready:
        raise SystemExit(f"Schema sync failed: {result.error}")
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sqlite_schema.adapters.base import DatabaseClient
from sqlite_schema.config.models import SyncOptions
from sqlite_schema.pragma import (
    IntegrityCheckError,
    check_integrity,
    get_db_version,
    set_db_version,
)
from sqlite_schema.schema.comparator import default_fallback, generate_sync_sql
from sqlite_schema.schema.introspector import SchemaIntrospector
from sqlite_schema.schema.models import ParsedSchema, Schema

logger = logging.getLogger(__name__)


class SyncResult(BaseModel):
    """Result of a sync run.

    Attributes:
        ready: ``True`` if the database now matches the target schema.
        error: Exception that stopped the sync, when ``ready`` is ``False``.
        skipped: ``True`` if the version gate skipped the sync.
        statements: Statements generated for this run (empty when skipped
            or already in sync).
        failed_statement: Statement that raised during execution, if any.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ready: bool = False
    error: BaseException | None = None
    skipped: bool = False
    statements: list[str] = Field(default_factory=list)
    failed_statement: str | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def plan_sync(
    client: DatabaseClient,
    target_schema: Schema,
    options: SyncOptions | None = None,
) -> list[str]:
    """Introspect the database and return the statements a sync would run.

    Nothing is executed and the version pragma is left alone.

    Raises:
        SchemaDefinitionError: If the target schema is invalid.
        IntrospectionError: If the catalog is inconsistent.
    """
    options = options or SyncOptions()
    existing = await SchemaIntrospector(client).introspect(options.exclude_table_prefix)
    return generate_sync_sql(
        existing,
        target_schema,
        options.truncate_if_exists,
        options.fallback or default_fallback,
    )


async def sync_tables(
    client: DatabaseClient,
    target_schema: Schema,
    options: SyncOptions | None = None,
    log: logging.Logger | None = None,
) -> SyncResult:
    """Synchronize the database schema with ``target_schema``.

    Args:
        client: Database client. Its ``transaction()`` must roll back DDL.
        target_schema: Table name to ``TableDefinition``.
        options: Version gate, truncation, fallback, callbacks and logging.
        log: Logger for trace lines (default: this module's logger). Trace
            lines are only emitted when ``options.log`` is set.

    Returns:
        ``SyncResult``. Never raises for sync failures.

    Example:
        >>> result = await sync_tables(adapter, {"t": table})
        >>> result.ready
        True
    """
    options = options or SyncOptions()
    log = log or logger

    def debug(message: str) -> None:
        if options.log:
            log.debug(message)

    existing: ParsedSchema | None = None
    old_version: int | None = None
    statements: list[str] = []
    failed_statement: str | None = None

    try:
        if options.check_integrity and not await check_integrity(client):
            raise IntegrityCheckError()

        if options.version is not None:
            old_version = await get_db_version(client)
            if options.version.skip_sync_when_same and old_version == options.version.current:
                debug(f"Sync tables skipped, version {old_version} is current")
                return SyncResult(ready=True, skipped=True)
            await set_db_version(client, options.version.current)

        debug("Sync tables start:")
        existing = await SchemaIntrospector(client).introspect(options.exclude_table_prefix)
        statements = generate_sync_sql(
            existing,
            target_schema,
            options.truncate_if_exists,
            options.fallback or default_fallback,
            debug=lambda line: debug(f"- {line}"),
        )

        if statements:
            async with client.transaction() as trx:
                for sql in statements:
                    failed_statement = sql
                    await trx.execute(sql)
                failed_statement = None
    except Exception as e:
        debug(f"Sync tables fail, {e}")
        if options.on_sync_fail is not None:
            try:
                await _invoke(options.on_sync_fail, e, failed_statement, existing, target_schema)
            except Exception:
                log.exception("on_sync_fail callback raised")
        return SyncResult(
            ready=False,
            error=e,
            statements=statements,
            failed_statement=failed_statement,
        )

    if options.on_sync_success is not None:
        try:
            await _invoke(options.on_sync_success, client, existing, old_version)
        except Exception:
            log.exception("on_sync_success callback raised")
    debug("Sync tables success")
    return SyncResult(ready=True, statements=statements)
