"""SQL statement rendering for schema synchronization.

Pure functions that turn table, column, index and trigger descriptions
into literal SQLite statements. Nothing here touches a database.

Every identifier is double-quoted and every statement ends with ``;``.
Index and trigger names are derived from the table and column names
(``idx_<table>_<col1>_<col2>``, ``tgr_<table>_<col>``), so the same
definition always renders byte-identical SQL.

Usage:
    from sqlite_schema.schema.ddl import create_table_statements

    for sql in create_table_statements("users", users_table):
        await client.execute(sql)
"""

import base64
import json
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from sqlite_schema.schema.models import (
    ColumnDefinition,
    ColumnKind,
    DataType,
    PhysicalType,
    RawSQL,
    TableDefinition,
)

TEMP_TABLE_PREFIX = "_temp_"
ROWID = "rowid"

TYPE_MAP: dict[DataType, PhysicalType] = {
    DataType.FLOAT: PhysicalType.REAL,
    DataType.INCREMENTS: PhysicalType.INTEGER,
    DataType.BOOLEAN: PhysicalType.INTEGER,
    DataType.INT: PhysicalType.INTEGER,
    DataType.BLOB: PhysicalType.BLOB,
    DataType.STRING: PhysicalType.TEXT,
    DataType.DATE: PhysicalType.TEXT,
    DataType.OBJECT: PhysicalType.TEXT,
}

TIMESTAMP_KINDS = (ColumnKind.CREATED_AT, ColumnKind.UPDATED_AT)


class SchemaDefinitionError(ValueError):
    """Raised when a target table definition is invalid."""


@dataclass
class RestoreEntry:
    """How to fill one column of the rebuilt table from the old one.

    Example:
        entry = RestoreEntry(column="age", expression='CAST("age" AS INTEGER)')
    """

    column: str
    expression: str


# ------------------------------------------------------------------
# Literals and identifiers
# ------------------------------------------------------------------


def quote_identifier(name: str) -> str:
    """Double-quote an identifier.

    Example:
        >>> quote_identifier('my"col')
        '"my""col"'
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Single-quote a string literal.

    Example:
        >>> quote_literal("it's")
        "'it''s'"
    """
    return "'" + value.replace("'", "''") + "'"


def physical_type(data_type: DataType) -> PhysicalType:
    return TYPE_MAP.get(data_type, PhysicalType.TEXT)


def render_default(value: Any) -> str | None:
    """Render a default value as a SQL literal.

    ``None`` means no default. ``RawSQL`` is inlined as-is, booleans
    become ``1`` / ``0``, numbers are written bare, strings are quoted
    and any other value is JSON-serialized and quoted.

    Example:
        >>> render_default("abc")
        "'abc'"
        >>> render_default(True)
        '1'
    """
    if value is None:
        return None
    if isinstance(value, RawSQL):
        return value.sql
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return quote_literal(value)
    if isinstance(value, (datetime, date, time)):
        return quote_literal(value.isoformat())
    if isinstance(value, (bytes, bytearray)):
        return "X" + quote_literal(bytes(value).hex().upper())
    return quote_literal(json.dumps(value, separators=(",", ":"), default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot serialize default value of type {type(value).__name__}")


def column_default(col: ColumnDefinition) -> str | None:
    """Default literal a column is created with."""
    if col.kind in TIMESTAMP_KINDS:
        return "CURRENT_TIMESTAMP"
    if col.kind is ColumnKind.INCREMENT:
        return None
    return render_default(col.default_value)


def column_signature(col: ColumnDefinition) -> tuple[PhysicalType, bool, str | None]:
    """``(physical_type, not_null, default)`` as the catalog would report it."""
    if col.kind is ColumnKind.INCREMENT:
        return PhysicalType.INTEGER, False, None
    if col.kind in TIMESTAMP_KINDS:
        return PhysicalType.TEXT, False, "CURRENT_TIMESTAMP"
    return physical_type(col.data_type), col.not_null, column_default(col)


def strip_outer_parens(sql: str) -> str:
    """Drop one pair of parentheses that wraps the whole expression.

    SQLite stores ``DEFAULT (expr)`` as ``expr`` in ``pragma_table_info``.

    Example:
        >>> strip_outer_parens("(abs(random()) % 100)")
        'abs(random()) % 100'
        >>> strip_outer_parens("(1) + (2)")
        '(1) + (2)'
    """
    text = sql.strip()
    if not (text.startswith("(") and text.endswith(")")):
        return sql
    depth = 0
    quote: str | None = None
    for i, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i < len(text) - 1:
                return sql
    return text[1:-1].strip()


def catalog_signature(
    table: TableDefinition, name: str
) -> tuple[PhysicalType, bool, str | None]:
    """``column_signature`` adjusted to what SQLite reports for ``table``.

    Primary key columns of a WITHOUT ROWID table are always NOT NULL, and
    expression defaults lose their outer parentheses.
    """
    col = table.columns[name]
    type_, not_null, default = column_signature(col)
    if table.without_rowid and name in table.primary_key_columns:
        not_null = True
    if default is not None and isinstance(col.default_value, RawSQL):
        default = strip_outer_parens(default)
    return type_, not_null, default


def render_column(name: str, col: ColumnDefinition) -> str:
    """Render one column definition.

    Example:
        >>> render_column("id", ColumnDefinition(data_type=DataType.INCREMENTS))
        '"id" INTEGER PRIMARY KEY AUTOINCREMENT'
    """
    if col.kind is ColumnKind.INCREMENT:
        return f"{quote_identifier(name)} INTEGER PRIMARY KEY AUTOINCREMENT"
    type_, not_null, default = column_signature(col)
    sql = f"{quote_identifier(name)} {type_.value}"
    if not_null:
        sql += " NOT NULL"
    if default is not None:
        sql += f" DEFAULT {default}"
    return sql


def _column_list(columns: list[str]) -> str:
    return "(" + ",".join(quote_identifier(c) for c in columns) + ")"


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


def validate_table(table_name: str, table: TableDefinition) -> None:
    """Check a target table definition before any SQL is generated.

    Raises:
        SchemaDefinitionError: On multiple ``increments`` columns, a
            primary key conflicting with the increment column, key
            columns that are not declared, or an invalid WITHOUT ROWID
            table.
    """
    if not table.columns:
        raise SchemaDefinitionError(f"Table '{table_name}' has no columns")

    increments = table.increment_columns
    if len(increments) > 1:
        raise SchemaDefinitionError(
            f"Table '{table_name}' has multiple increments columns: {increments}"
        )

    primary_key = table.primary_key_columns
    if increments and primary_key and primary_key != increments:
        raise SchemaDefinitionError(
            f"Table '{table_name}': primary key {primary_key} conflicts with "
            f"increments column '{increments[0]}'"
        )

    if table.without_rowid:
        if increments:
            raise SchemaDefinitionError(
                f"Table '{table_name}': WITHOUT ROWID table cannot have an "
                f"increments column"
            )
        if not primary_key:
            raise SchemaDefinitionError(
                f"Table '{table_name}': WITHOUT ROWID table requires a primary key"
            )

    keys = [("primary key", primary_key)] if primary_key else []
    keys += [("unique", key) for key in table.unique_keys]
    keys += [("index", key) for key in table.index_keys]
    for label, key in keys:
        if not key:
            raise SchemaDefinitionError(f"Table '{table_name}': empty {label} key")
        unknown = [c for c in key if c not in table.columns]
        if unknown:
            raise SchemaDefinitionError(
                f"Table '{table_name}': {label} references unknown column(s) {unknown}"
            )


def validate_index_names(schema: dict[str, TableDefinition]) -> None:
    """Reject index definitions that render the same index name.

    ``idx_<table>_<columns>`` is ambiguous across tables: table ``a_b``
    indexed on ``c`` and table ``a`` indexed on ``b, c`` both give
    ``idx_a_b_c``.

    Raises:
        SchemaDefinitionError: On the first duplicate name.
    """
    owners: dict[str, str] = {}
    for table_name, table in schema.items():
        for key in table.index_keys:
            name = index_name(table_name, key)
            if name in owners:
                raise SchemaDefinitionError(
                    f"Index '{name}' of table '{table_name}' is already "
                    f"declared by table '{owners[name]}'"
                )
            owners[name] = table_name


# ------------------------------------------------------------------
# Statements
# ------------------------------------------------------------------


def temp_table_name(table_name: str) -> str:
    return f"{TEMP_TABLE_PREFIX}{table_name}"


def index_name(table_name: str, columns: list[str]) -> str:
    return f"idx_{table_name}_{'_'.join(columns)}"


def trigger_name(table_name: str, column: str) -> str:
    return f"tgr_{table_name}_{column}"


def create_table(
    table_name: str, table: TableDefinition, if_not_exists: bool = True
) -> str:
    """Render ``CREATE TABLE`` with inline primary key and unique constraints.

    An ``increments`` column is its own primary key, so no separate
    ``PRIMARY KEY (...)`` clause is rendered for it.
    """
    parts = [render_column(name, col) for name, col in table.columns.items()]
    primary_key = table.primary_key_columns
    if primary_key and table.increment_column is None:
        parts.append(f"PRIMARY KEY {_column_list(primary_key)}")
    for key in table.unique_keys:
        parts.append(f"UNIQUE {_column_list(key)}")

    exists = " IF NOT EXISTS" if if_not_exists else ""
    suffix = " WITHOUT ROWID" if table.without_rowid else ""
    return (
        f"CREATE TABLE{exists} {quote_identifier(table_name)} "
        f"({','.join(parts)}){suffix};"
    )


def drop_table(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table_name)};"


def rename_table(old_name: str, new_name: str) -> str:
    return f"ALTER TABLE {quote_identifier(old_name)} RENAME TO {quote_identifier(new_name)};"


def add_column(table_name: str, name: str, col: ColumnDefinition) -> str:
    """Render ``ALTER TABLE ... ADD COLUMN``.

    Example:
        >>> add_column("t", "name", ColumnDefinition(data_type=DataType.STRING))
        'ALTER TABLE "t" ADD COLUMN "name" TEXT;'
    """
    return f"ALTER TABLE {quote_identifier(table_name)} ADD COLUMN {render_column(name, col)};"


def drop_column(table_name: str, name: str) -> str:
    return f"ALTER TABLE {quote_identifier(table_name)} DROP COLUMN {quote_identifier(name)};"


def create_index(table_name: str, columns: list[str]) -> str:
    return (
        f"CREATE INDEX IF NOT EXISTS {quote_identifier(index_name(table_name, columns))} "
        f"ON {quote_identifier(table_name)} {_column_list(columns)};"
    )


def drop_index(name: str) -> str:
    return f"DROP INDEX IF EXISTS {quote_identifier(name)};"


def trigger_key(table: TableDefinition) -> list[str]:
    """Columns identifying the updated row inside the update trigger."""
    if table.increment_column is not None:
        return [table.increment_column]
    if table.without_rowid:
        return table.primary_key_columns
    return [ROWID]


def _key_match(column: str) -> str:
    if column == ROWID:
        return f"{ROWID} = NEW.{ROWID}"
    quoted = quote_identifier(column)
    return f"{quoted} = NEW.{quoted}"


def create_update_trigger(table_name: str, column: str, key: list[str]) -> str:
    """Render the ``AFTER UPDATE`` trigger that refreshes an update-time column."""
    table = quote_identifier(table_name)
    where = " AND ".join(_key_match(c) for c in key)
    return (
        f"CREATE TRIGGER IF NOT EXISTS {quote_identifier(trigger_name(table_name, column))} "
        f"AFTER UPDATE ON {table} BEGIN "
        f"UPDATE {table} SET {quote_identifier(column)} = CURRENT_TIMESTAMP "
        f"WHERE {where}; END;"
    )


def drop_trigger(name: str) -> str:
    return f"DROP TRIGGER IF EXISTS {quote_identifier(name)};"


def insert_select(target: str, source: str, entries: list[RestoreEntry]) -> str:
    """Render the data-copy ``INSERT INTO ... SELECT ... FROM``."""
    columns = ",".join(quote_identifier(e.column) for e in entries)
    expressions = ",".join(e.expression for e in entries)
    return (
        f"INSERT INTO {quote_identifier(target)} ({columns}) "
        f"SELECT {expressions} FROM {quote_identifier(source)};"
    )


def index_statements(table_name: str, table: TableDefinition) -> list[str]:
    return [create_index(table_name, key) for key in table.index_keys]


def trigger_statements(table_name: str, table: TableDefinition) -> list[str]:
    column = table.update_at_column
    if column is None:
        return []
    return [create_update_trigger(table_name, column, trigger_key(table))]


def create_table_statements(table_name: str, table: TableDefinition) -> list[str]:
    """Statements that create a table from scratch with its indexes and trigger."""
    return [
        create_table(table_name, table),
        *index_statements(table_name, table),
        *trigger_statements(table_name, table),
    ]


def rebuild_table(
    table_name: str,
    restore_entries: list[RestoreEntry],
    target: TableDefinition,
) -> list[str]:
    """Rebuild a table into the target shape, keeping restorable data.

    Order: create the temporary table, copy rows (only when at least one
    column is restorable), drop the original, rename the temporary table,
    then recreate indexes and the update trigger.
    """
    temp = temp_table_name(table_name)
    statements = [create_table(temp, target, if_not_exists=False)]
    if restore_entries:
        statements.append(insert_select(temp, table_name, restore_entries))
    statements.append(drop_table(table_name))
    statements.append(rename_table(temp, table_name))
    statements.extend(index_statements(table_name, target))
    statements.extend(trigger_statements(table_name, target))
    return statements
