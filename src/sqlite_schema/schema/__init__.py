"""Schema definition, introspection, diffing and synchronization.

Usage:
    from sqlite_schema.schema import column, define_table, sync_tables
    from sqlite_schema.schema import SchemaIntrospector, generate_sync_sql
"""

from sqlite_schema.schema.comparator import (
    FallbackInfo,
    TableAction,
    TableDiff,
    default_fallback,
    diff_schema,
    diff_table,
    generate_sync_sql,
)
from sqlite_schema.schema.ddl import RestoreEntry, SchemaDefinitionError, rebuild_table
from sqlite_schema.schema.define import column, define_table, raw
from sqlite_schema.schema.introspector import IntrospectionError, SchemaIntrospector
from sqlite_schema.schema.models import (
    ColumnDefinition,
    ColumnKind,
    DataType,
    ParsedColumn,
    ParsedSchema,
    ParsedTable,
    PhysicalType,
    RawSQL,
    Schema,
    TableDefinition,
)
from sqlite_schema.schema.sync import SyncResult, plan_sync, sync_tables

__all__ = [
    "column",
    "define_table",
    "raw",
    "ColumnDefinition",
    "ColumnKind",
    "DataType",
    "PhysicalType",
    "RawSQL",
    "Schema",
    "TableDefinition",
    "ParsedColumn",
    "ParsedTable",
    "ParsedSchema",
    "SchemaIntrospector",
    "IntrospectionError",
    "RestoreEntry",
    "SchemaDefinitionError",
    "rebuild_table",
    "FallbackInfo",
    "TableAction",
    "TableDiff",
    "default_fallback",
    "diff_table",
    "diff_schema",
    "generate_sync_sql",
    "SyncResult",
    "plan_sync",
    "sync_tables",
]
