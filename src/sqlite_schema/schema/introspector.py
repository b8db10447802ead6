"""SQLite schema introspection via ``sqlite_master`` and table pragmas.

This module queries the live database to extract schema information:
- Tables, columns, storage types, nullability, defaults
- Primary key (in declaration order) and the AUTOINCREMENT column
- Unique constraints and plain indexes
- Triggers
- WITHOUT ROWID tables

Catalog rows are mapped straight into ``ParsedTable`` models; nothing
downstream sees raw pragma output.
"""

import logging
import re
from collections.abc import Sequence
from typing import Any

from sqlite_schema.adapters.base import DatabaseClient
from sqlite_schema.schema.models import (
    ParsedColumn,
    ParsedSchema,
    ParsedTable,
    PhysicalType,
)

logger = logging.getLogger(__name__)

SYSTEM_TABLE_PREFIX = "sqlite_"

_AUTOINCREMENT = re.compile(r"\bAUTOINCREMENT\b", re.IGNORECASE)
_WITHOUT_ROWID = re.compile(r"\)\s*WITHOUT\s+ROWID\s*;?\s*$", re.IGNORECASE)


class IntrospectionError(RuntimeError):
    """Raised when the catalog is inconsistent (e.g. a listed table has no columns)."""


def storage_type(declared_type: str | None) -> PhysicalType:
    """Map a declared column type to its SQLite type affinity.

    Follows SQLite's affinity rules; NUMERIC affinity is reported as REAL.

    Examples:
        >>> storage_type("INTEGER")
        <PhysicalType.INTEGER: 'INTEGER'>
        >>> storage_type("VARCHAR(20)")
        <PhysicalType.TEXT: 'TEXT'>
        >>> storage_type("")
        <PhysicalType.BLOB: 'BLOB'>
    """
    declared = (declared_type or "").upper()
    if "INT" in declared:
        return PhysicalType.INTEGER
    if any(token in declared for token in ("CHAR", "CLOB", "TEXT")):
        return PhysicalType.TEXT
    if not declared or "BLOB" in declared:
        return PhysicalType.BLOB
    return PhysicalType.REAL


class SchemaIntrospector:
    """Introspects the schema of a SQLite database.

    Read-only: only ``SELECT`` statements against ``sqlite_master`` and
    the ``pragma_*`` table-valued functions are issued.

    Usage:
        introspector = SchemaIntrospector(client)

        # Full schema (columns, keys, indexes, triggers)
        schema = await introspector.introspect(exclude_prefixes=["_litestream"])

        # Or just column names
        columns = await introspector.get_column_names()
    """

    def __init__(self, client: DatabaseClient):
        self._client = client

    async def introspect(
        self, exclude_prefixes: Sequence[str] | None = None
    ) -> ParsedSchema:
        """Introspect every user table.

        Args:
            exclude_prefixes: Table name prefixes to skip. ``sqlite_`` is
                always skipped.

        Returns:
            ParsedSchema keyed by table name.

        Raises:
            IntrospectionError: If a listed table reports no columns.
        """
        prefixes = self._prefixes(exclude_prefixes)
        rows = await self._client.fetch_all(
            "SELECT type, name, tbl_name, sql FROM sqlite_master "
            "WHERE type IN ('table', 'trigger') ORDER BY name"
        )

        schema = ParsedSchema()
        triggers: list[dict[str, Any]] = []
        for row in rows:
            if row["type"] == "trigger":
                triggers.append(row)
                continue
            if row["name"].startswith(prefixes):
                continue
            schema.tables[row["name"]] = await self._get_table(row["name"], row["sql"] or "")

        for row in triggers:
            table = schema.tables.get(row["tbl_name"])
            if table is not None:
                table.triggers.append(row["name"])

        logger.debug(f"Introspected {len(schema.tables)} tables")
        return schema

    async def get_column_names(
        self, exclude_prefixes: Sequence[str] | None = None
    ) -> dict[str, list[str]]:
        """Get column names for all tables, in declaration order."""
        prefixes = self._prefixes(exclude_prefixes)
        rows = await self._client.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        result: dict[str, list[str]] = {}
        for row in rows:
            if row["name"].startswith(prefixes):
                continue
            columns = await self._client.fetch_all(
                "SELECT name FROM pragma_table_info(?)", [row["name"]]
            )
            result[row["name"]] = [c["name"] for c in columns]
        return result

    @staticmethod
    def _prefixes(exclude_prefixes: Sequence[str] | None) -> tuple[str, ...]:
        return (SYSTEM_TABLE_PREFIX, *(exclude_prefixes or ()))

    async def _get_table(self, table_name: str, create_sql: str) -> ParsedTable:
        rows = await self._client.fetch_all(
            "SELECT * FROM pragma_table_info(?)", [table_name]
        )
        if not rows:
            raise IntrospectionError(f"No column info for table '{table_name}'")

        table = ParsedTable(without_rowid=bool(_WITHOUT_ROWID.search(create_sql)))
        pk_columns: list[tuple[int, str]] = []
        for row in rows:
            table.columns[row["name"]] = ParsedColumn(
                physical_type=storage_type(row["type"]),
                not_null=bool(row["notnull"]),
                default_value=row["dflt_value"],
            )
            if row["pk"]:
                pk_columns.append((row["pk"], row["name"]))
        primary_key = [name for _, name in sorted(pk_columns)]

        # Only an INTEGER PRIMARY KEY column can carry AUTOINCREMENT
        if len(primary_key) == 1 and _AUTOINCREMENT.search(create_sql):
            table.increment_column = primary_key[0]
        else:
            table.primary_key = primary_key

        await self._get_indexes(table_name, table)
        return table

    async def _get_indexes(self, table_name: str, table: ParsedTable) -> None:
        """Split the table's indexes into unique constraints and plain indexes."""
        index_rows = await self._client.fetch_all(
            "SELECT * FROM pragma_index_list(?)", [table_name]
        )
        for index in sorted(index_rows, key=lambda r: r["name"]):
            origin = index["origin"]
            if origin == "pk":
                continue
            info = await self._client.fetch_all(
                "SELECT * FROM pragma_index_info(?) ORDER BY seqno", [index["name"]]
            )
            # Expression index columns have no name
            columns = [row["name"] for row in info if row["name"] is not None]
            if origin == "u":
                table.unique.append(columns)
            else:
                table.indexes[index["name"]] = columns
