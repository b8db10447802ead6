"""Pydantic models for schema definition and introspection.

This module contains schema-domain models:
- Definition models (the target): DataType, ColumnKind, RawSQL,
  ColumnDefinition, TableDefinition, Schema
- Introspection models (what exists): PhysicalType, ParsedColumn,
  ParsedTable, ParsedSchema

Runtime options (SyncOptions, VersionOptions) live in
sqlite_schema.config.models.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enums
# ============================================================================


class DataType(str, Enum):
    """Declared column data type."""

    INCREMENTS = "increments"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BLOB = "blob"
    OBJECT = "object"
    BOOLEAN = "boolean"
    DATE = "date"


class PhysicalType(str, Enum):
    """SQLite storage type a column is declared with."""

    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"
    BLOB = "BLOB"


class ColumnKind(str, Enum):
    """Role of a column beyond its data type.

    ``CREATED_AT`` and ``UPDATED_AT`` columns default to
    ``CURRENT_TIMESTAMP``; ``UPDATED_AT`` also gets an ``AFTER UPDATE``
    trigger.
    """

    PLAIN = "plain"
    INCREMENT = "increment"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    SOFT_DELETE = "soft_delete"


# ============================================================================
# Definition Models
# ============================================================================


class RawSQL(BaseModel):
    """Default value inlined verbatim into DDL.

    Example:
        >>> RawSQL(sql="(strftime('%s','now'))").sql
        "(strftime('%s','now'))"
    """

    model_config = ConfigDict(frozen=True)

    sql: str


def as_key(spec: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Normalize a key spec (``'id'`` or ``['a', 'b']``) to a column list.

    Example:
        >>> as_key("id")
        ['id']
        >>> as_key(None)
        []
    """
    if spec is None:
        return []
    if isinstance(spec, str):
        return [spec]
    return list(spec)


class ColumnDefinition(BaseModel):
    """Declared column.

    Example:
        >>> col = ColumnDefinition(data_type=DataType.INCREMENTS)
        >>> col.kind
        <ColumnKind.INCREMENT: 'increment'>
    """

    data_type: DataType
    default_value: Any = None
    not_null: bool = False
    kind: ColumnKind = ColumnKind.PLAIN

    @model_validator(mode="after")
    def _sync_increment_kind(self) -> "ColumnDefinition":
        if self.data_type is DataType.INCREMENTS:
            self.kind = ColumnKind.INCREMENT
        elif self.kind is ColumnKind.INCREMENT:
            raise ValueError("ColumnKind.INCREMENT requires DataType.INCREMENTS")
        return self


class TableDefinition(BaseModel):
    """Declared table.

    ``create_at``, ``update_at`` and ``soft_delete`` inject derived columns
    when set: ``True`` uses the default column name (``createAt``,
    ``updateAt``, ``isDeleted``), a string is used as the column name.

    Example:
        >>> table = TableDefinition(
        ...     columns={"id": ColumnDefinition(data_type=DataType.INCREMENTS)},
        ...     update_at=True,
        ... )
        >>> table.update_at_column
        'updateAt'
    """

    columns: dict[str, ColumnDefinition]
    primary_key: str | list[str] | None = None
    unique: list[str | list[str]] = Field(default_factory=list)
    index: list[str | list[str]] = Field(default_factory=list)
    create_at: bool | str = False
    update_at: bool | str = False
    soft_delete: bool | str = False
    without_rowid: bool = False

    @model_validator(mode="after")
    def _inject_derived_columns(self) -> "TableDefinition":
        derived = (
            (self.create_at, "createAt", DataType.DATE, None, ColumnKind.CREATED_AT),
            (self.update_at, "updateAt", DataType.DATE, None, ColumnKind.UPDATED_AT),
            (self.soft_delete, "isDeleted", DataType.INT, 0, ColumnKind.SOFT_DELETE),
        )
        columns = dict(self.columns)
        for option, default_name, data_type, default_value, kind in derived:
            if not option:
                continue
            name = default_name if option is True else option
            columns[name] = ColumnDefinition(
                data_type=data_type, default_value=default_value, kind=kind
            )
        self.columns = columns
        return self

    @property
    def increment_columns(self) -> list[str]:
        """Names of all ``increments`` columns (valid tables have at most one)."""
        return [
            name for name, col in self.columns.items()
            if col.kind is ColumnKind.INCREMENT
        ]

    @property
    def increment_column(self) -> str | None:
        columns = self.increment_columns
        return columns[0] if columns else None

    @property
    def primary_key_columns(self) -> list[str]:
        return as_key(self.primary_key)

    @property
    def unique_keys(self) -> list[list[str]]:
        return [as_key(u) for u in self.unique]

    @property
    def index_keys(self) -> list[list[str]]:
        return [as_key(i) for i in self.index]

    @property
    def update_at_column(self) -> str | None:
        for name, col in self.columns.items():
            if col.kind is ColumnKind.UPDATED_AT:
                return name
        return None


Schema = dict[str, TableDefinition]


# ============================================================================
# Introspection Models
# ============================================================================


class ParsedColumn(BaseModel):
    """Column as reported by ``pragma_table_info``.

    ``default_value`` is the default expression text exactly as written
    in the table's DDL (e.g. ``'abc'`` with quotes, ``0``,
    ``CURRENT_TIMESTAMP``).
    """

    physical_type: PhysicalType
    not_null: bool = False
    default_value: str | None = None


class ParsedTable(BaseModel):
    """Table as it currently exists in the database.

    The autoincrement column is recorded in ``increment_column`` and is
    not part of ``primary_key``.
    """

    columns: dict[str, ParsedColumn] = Field(default_factory=dict)
    primary_key: list[str] = Field(default_factory=list)
    unique: list[list[str]] = Field(default_factory=list)
    indexes: dict[str, list[str]] = Field(default_factory=dict)
    triggers: list[str] = Field(default_factory=list)
    increment_column: str | None = None
    without_rowid: bool = False

    @property
    def index(self) -> list[list[str]]:
        """Column lists of the plain (non-unique-constraint) indexes."""
        return list(self.indexes.values())


class ParsedSchema(BaseModel):
    """Complete existing schema, rebuilt fresh on every sync."""

    tables: dict[str, ParsedTable] = Field(default_factory=dict)

    @property
    def index_names(self) -> list[str]:
        return [name for table in self.tables.values() for name in table.indexes]

    @property
    def trigger_names(self) -> list[str]:
        return [name for table in self.tables.values() for name in table.triggers]
