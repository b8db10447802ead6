"""SQLite pragma helpers.

Thin wrappers around the pragmas the schema engine relies on:

- ``user_version`` as the schema version counter
- ``integrity_check`` for the optional pre-flight corruption check
- ``foreign_keys`` toggle
- connection tuning (``optimize_pragma``) and file maintenance
  (``optimize_size``)

None of these pragmas accept bound parameters, so values are validated
before being inlined.

Usage:
    from sqlite_schema.pragma import check_integrity, get_db_version

    if not await check_integrity(client):
        raise IntegrityCheckError()
    version = await get_db_version(client)
"""

import re
from typing import Any

from sqlite_schema.adapters.base import DatabaseClient

_PRAGMA_VALUE = re.compile(r"^-?\w+$")

DEFAULT_OPTIMIZE_PRAGMAS: dict[str, Any] = {
    "mmap_size": -1,
    "cache_size": 4096,
    "page_size": 32768,
    "journal_mode": "WAL",
    "temp_store": "MEMORY",
    "synchronous": "NORMAL",
}


class IntegrityCheckError(RuntimeError):
    """Raised when ``PRAGMA integrity_check`` does not report ``ok``."""

    def __init__(self, message: str = "db file maybe corrupted") -> None:
        super().__init__(message)


async def check_integrity(client: DatabaseClient) -> bool:
    """Run ``PRAGMA integrity_check``.

    Returns:
        ``True`` if the database reports ``ok``.

    Raises:
        RuntimeError: If the pragma returns no rows.
    """
    rows = await client.fetch_all("PRAGMA integrity_check")
    if not rows:
        raise RuntimeError("fail to check integrity")
    return rows[0].get("integrity_check") == "ok"


async def get_db_version(client: DatabaseClient) -> int:
    """Read the ``user_version`` pragma.

    Raises:
        RuntimeError: If the pragma returns no rows.
    """
    rows = await client.fetch_all("PRAGMA user_version")
    if not rows:
        raise RuntimeError("fail to get DBVersion")
    return int(rows[0]["user_version"])


async def set_db_version(client: DatabaseClient, version: int) -> int:
    """Write the ``user_version`` pragma and return the new version."""
    if isinstance(version, bool) or not isinstance(version, int):
        raise TypeError(f"DB version must be an int, got {version!r}")
    await client.execute(f"PRAGMA user_version = {version}")
    return version


async def foreign_keys(client: DatabaseClient, enable: bool) -> None:
    """Enable or disable foreign key enforcement on the connection."""
    await client.execute(f"PRAGMA foreign_keys = {'ON' if enable else 'OFF'}")


def build_pragma_statements(options: dict[str, Any] | None = None) -> list[str]:
    """Render ``PRAGMA name = value`` statements over the tuning defaults.

    Example:
        >>> build_pragma_statements({"journal_mode": "DELETE"})[3]
        'PRAGMA journal_mode = DELETE'
    """
    merged = {**DEFAULT_OPTIMIZE_PRAGMAS, **(options or {})}
    statements: list[str] = []
    for pragma, value in merged.items():
        if not _PRAGMA_VALUE.match(pragma) or not _PRAGMA_VALUE.match(str(value)):
            raise ValueError(f"Invalid pragma: {pragma} = {value!r}")
        statements.append(f"PRAGMA {pragma} = {value}")
    return statements


async def optimize_pragma(client: Any, options: dict[str, Any] | None = None) -> None:
    """Apply connection tuning pragmas.

    ``journal_mode`` cannot change inside a transaction, so clients that
    offer ``execute_autocommit()`` (``AsyncSqliteAdapter``) run the
    statements through it.

    Args:
        client: Database client.
        options: Overrides for ``DEFAULT_OPTIMIZE_PRAGMAS``.
    """
    run = getattr(client, "execute_autocommit", None) or client.execute
    for statement in build_pragma_statements(options):
        await run(statement)


async def optimize_size(client: Any, rebuild: bool = False) -> None:
    """Optimize the database file.

    Args:
        client: Database client.
        rebuild: Run ``VACUUM`` instead of ``PRAGMA optimize``.
    """
    if rebuild:
        run = getattr(client, "execute_autocommit", None) or client.execute
        await run("VACUUM")
    else:
        await client.execute("PRAGMA optimize")
