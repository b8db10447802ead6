"""Pydantic models for sync options and database configuration."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Sync Options
# ============================================================================


class VersionOptions(BaseModel):
    """Schema version gate backed by ``PRAGMA user_version``."""

    current: int
    skip_sync_when_same: bool = False


class SyncOptions(BaseModel):
    """Options for ``sync_tables()``.

    Attributes:
        version: Version gate. When set, the stored version is read and,
            unless the sync is skipped, overwritten with ``current``
            before the schema is diffed.
        exclude_table_prefix: Table name prefixes ignored by
            introspection. ``sqlite_`` is always ignored.
        truncate_if_exists: ``True`` to drop and recreate every existing
            target table empty, or a list of table names.
        fallback: ``(FallbackInfo) -> str`` returning the SQL literal used
            for rows that would violate a new ``NOT NULL`` constraint.
        on_sync_success: Called as ``(client, old_schema, old_version)``
            after commit. May be async.
        on_sync_fail: Called as ``(error, failed_sql, old_schema,
            target_schema)``. May be async.
        log: Emit debug trace lines for every planned operation.
        check_integrity: Run ``PRAGMA integrity_check`` first.
    """

    version: VersionOptions | None = None
    exclude_table_prefix: list[str] = Field(default_factory=lambda: ["sqlite_"])
    truncate_if_exists: bool | list[str] = False
    fallback: Callable[..., str] | None = None
    on_sync_success: Callable[..., Any] | None = None
    on_sync_fail: Callable[..., Any] | None = None
    log: bool = False
    check_integrity: bool = False


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    pragmas: dict[str, str | int] = Field(default_factory=dict)


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    default_profile: str | None = None
    schema_ref: str | None = None  # "package.module:ATTR"
    sync: SyncOptions = Field(default_factory=SyncOptions)
