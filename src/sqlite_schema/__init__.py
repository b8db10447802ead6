"""sqlite-schema: Declarative schema synchronization for SQLite.

Describes tables in Python, introspects a live SQLite database, and
generates and applies the DDL that moves it to the described shape in a
single transaction, keeping existing row data where it can.

Usage:
    from sqlite_schema import AsyncSqliteAdapter, column, define_table, sync_tables
    from sqlite_schema import SyncOptions, VersionOptions
    from sqlite_schema import get_adapter, load_db_config
"""

__version__ = "0.1.0"

# Adapters
from sqlite_schema.adapters.base import DatabaseClient
from sqlite_schema.adapters.sqlite import AsyncSqliteAdapter

# Config
from sqlite_schema.config.loader import ConfigError, load_db_config
from sqlite_schema.config.models import (
    DatabaseConfig,
    DatabaseProfile,
    SyncOptions,
    VersionOptions,
)

# Factory
from sqlite_schema.factory import ProfileNotFoundError, get_adapter, resolve_url

# Pragmas
from sqlite_schema.pragma import (
    IntegrityCheckError,
    check_integrity,
    get_db_version,
    set_db_version,
)

# Schema
from sqlite_schema.schema.comparator import FallbackInfo, generate_sync_sql
from sqlite_schema.schema.ddl import SchemaDefinitionError
from sqlite_schema.schema.define import column, define_table, raw
from sqlite_schema.schema.introspector import IntrospectionError, SchemaIntrospector
from sqlite_schema.schema.models import DataType, TableDefinition
from sqlite_schema.schema.sync import SyncResult, plan_sync, sync_tables

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncSqliteAdapter",
    # Config
    "load_db_config",
    "ConfigError",
    "DatabaseProfile",
    "DatabaseConfig",
    "SyncOptions",
    "VersionOptions",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Pragmas
    "IntegrityCheckError",
    "check_integrity",
    "get_db_version",
    "set_db_version",
    # Schema
    "column",
    "define_table",
    "raw",
    "DataType",
    "TableDefinition",
    "SchemaIntrospector",
    "IntrospectionError",
    "SchemaDefinitionError",
    "FallbackInfo",
    "generate_sync_sql",
    "plan_sync",
    "sync_tables",
    "SyncResult",
]
