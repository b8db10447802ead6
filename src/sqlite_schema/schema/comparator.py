"""Schema comparison and sync SQL generation.

Compares the introspected schema against the target schema and decides,
per table, whether it can be altered in place (``ADD COLUMN`` /
``DROP COLUMN`` plus index and trigger maintenance) or must be rebuilt.
Pure logic -- no I/O, no database connections.

Usage:
    from sqlite_schema.schema.comparator import generate_sync_sql
    from sqlite_schema.schema.introspector import SchemaIntrospector

    existing = await SchemaIntrospector(client).introspect()
    for sql in generate_sync_sql(existing, {"users": users}):
        print(sql)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from sqlite_schema.schema import ddl
from sqlite_schema.schema.ddl import RestoreEntry, quote_identifier
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


# ------------------------------------------------------------------
# Fallback values
# ------------------------------------------------------------------


@dataclass
class FallbackInfo:
    """Context handed to a fallback function.

    Attributes:
        table: Table being rebuilt.
        column: Column that needs a value for rows that have none.
        data_type: Declared data type of the target column.
        physical_type: SQLite type the column is created with.
        exists_in_source: ``True`` if the column exists in the old table
            (the fallback replaces its NULLs), ``False`` if it is new
            (every copied row gets the fallback).
    """

    table: str
    column: str
    data_type: DataType
    physical_type: PhysicalType
    exists_in_source: bool


FallbackFn = Callable[[FallbackInfo], str]


def default_fallback(info: FallbackInfo) -> str:
    """Return ``0`` for numeric columns, ``'0'`` for text and ``X''`` for blobs."""
    if info.physical_type is PhysicalType.TEXT:
        return "'0'"
    if info.physical_type is PhysicalType.BLOB:
        return "X''"
    return "0"


# ------------------------------------------------------------------
# Table diff
# ------------------------------------------------------------------


class TableAction(str, Enum):
    UNCHANGED = "unchanged"
    CREATE = "create"
    DROP = "drop"
    TRUNCATE = "truncate"
    ALTER = "alter"
    REBUILD = "rebuild"


@dataclass
class TableDiff:
    """Planned change for one table.

    ``dropped_indexes`` and ``dropped_triggers`` are kept apart from
    ``statements`` because a sync run drops every stale index and trigger
    before it touches any table body.

    Example:
        diff = diff_table("t", existing_t, target_t)
        diff.action        # TableAction.ALTER
        diff.to_sql()      # ['ALTER TABLE "t" ADD COLUMN "name" TEXT;']
    """

    table: str
    action: TableAction
    reasons: list[str] = field(default_factory=list)
    dropped_indexes: list[str] = field(default_factory=list)
    dropped_triggers: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)

    @property
    def drop_statements(self) -> list[str]:
        return [ddl.drop_index(name) for name in self.dropped_indexes] + [
            ddl.drop_trigger(name) for name in self.dropped_triggers
        ]

    @property
    def has_changes(self) -> bool:
        return bool(self.dropped_indexes or self.dropped_triggers or self.statements)

    def to_sql(self) -> list[str]:
        """All statements for this table, drops first."""
        return self.drop_statements + self.statements


def _effective_primary_key(table: TableDefinition) -> list[str]:
    # The increment column is its own primary key and is tracked separately
    if table.increment_column is not None:
        return []
    return table.primary_key_columns


def _column_changed(existing: ParsedColumn, target: TableDefinition, name: str) -> bool:
    return (existing.physical_type, existing.not_null, existing.default_value) != (
        ddl.catalog_signature(target, name)
    )


def _can_add_column(col: ColumnDefinition) -> bool:
    """Whether ``ALTER TABLE ... ADD COLUMN`` can create this column."""
    if col.kind in (ColumnKind.INCREMENT, ColumnKind.CREATED_AT, ColumnKind.UPDATED_AT):
        return False
    if isinstance(col.default_value, RawSQL):
        return False
    return not (col.not_null and ddl.column_default(col) is None)


def rebuild_reasons(existing: ParsedTable, target: TableDefinition) -> list[str]:
    """List why ``existing`` cannot be altered in place into ``target``.

    An empty list means the incremental path is enough.

    Examples:
        >>> existing = ParsedTable(
        ...     columns={"id": ParsedColumn(physical_type=PhysicalType.INTEGER)},
        ...     primary_key=["id"],
        ... )
        >>> target = TableDefinition(
        ...     columns={
        ...         "id": ColumnDefinition(data_type=DataType.INT),
        ...         "name": ColumnDefinition(data_type=DataType.STRING),
        ...     },
        ...     primary_key=["id", "name"],
        ... )
        >>> rebuild_reasons(existing, target)
        ["primary key changed: ['id'] -> ['id', 'name']"]
    """
    reasons: list[str] = []

    target_pk = _effective_primary_key(target)
    if existing.primary_key != target_pk:
        reasons.append(f"primary key changed: {existing.primary_key} -> {target_pk}")

    if existing.increment_column != target.increment_column:
        reasons.append(
            f"increment column changed: {existing.increment_column} -> "
            f"{target.increment_column}"
        )

    existing_unique = {frozenset(key) for key in existing.unique}
    target_unique = {frozenset(key) for key in target.unique_keys}
    if existing_unique != target_unique:
        reasons.append(
            f"unique constraints changed: {existing.unique} -> {target.unique_keys}"
        )

    if existing.without_rowid != target.without_rowid:
        reasons.append(f"without rowid changed: {target.without_rowid}")

    for name, col in target.columns.items():
        existing_col = existing.columns.get(name)
        if existing_col is None:
            if not _can_add_column(col):
                reasons.append(f"column '{name}' cannot be added in place")
        elif _column_changed(existing_col, target, name):
            reasons.append(f"column '{name}' changed")

    return reasons


def restore_entries(
    table_name: str,
    existing: ParsedTable,
    target: TableDefinition,
    fallback: FallbackFn = default_fallback,
) -> list[RestoreEntry]:
    """Compute how each target column is filled when the table is rebuilt.

    - unchanged column: copied as-is
    - changed column: ``CAST`` to the new type when the type differs,
      wrapped in ``IFNULL(..., fallback)`` when a nullable column becomes
      ``NOT NULL``
    - new ``NOT NULL`` column without default: the fallback literal
    - other new columns and dropped columns are left out

    The fallback is the target column's own default when it has one,
    otherwise the result of ``fallback``.
    """
    entries: list[RestoreEntry] = []
    for name, col in target.columns.items():
        target_type, target_not_null, _ = ddl.catalog_signature(target, name)
        target_default = ddl.column_default(col)
        existing_col = existing.columns.get(name)

        if existing_col is None:
            if col.kind is ColumnKind.INCREMENT:
                continue
            if target_not_null and target_default is None:
                info = FallbackInfo(table_name, name, col.data_type, target_type, False)
                entries.append(RestoreEntry(name, fallback(info)))
            continue

        expression = quote_identifier(name)
        if not _column_changed(existing_col, target, name):
            entries.append(RestoreEntry(name, expression))
            continue

        if existing_col.physical_type is not target_type:
            expression = f"CAST({expression} AS {target_type.value})"
        if target_not_null and not existing_col.not_null:
            if target_default is not None:
                value = target_default
            else:
                info = FallbackInfo(table_name, name, col.data_type, target_type, True)
                value = fallback(info)
            expression = f"IFNULL({expression},{value})"
        entries.append(RestoreEntry(name, expression))
    return entries


def _target_index_names(table_name: str, target: TableDefinition) -> dict[str, list[str]]:
    return {ddl.index_name(table_name, key): key for key in target.index_keys}


def _target_trigger_names(table_name: str, target: TableDefinition) -> set[str]:
    column = target.update_at_column
    return {ddl.trigger_name(table_name, column)} if column else set()


def diff_table(
    table_name: str,
    existing: ParsedTable,
    target: TableDefinition,
    fallback: FallbackFn = default_fallback,
) -> TableDiff:
    """Plan the statements that turn ``existing`` into ``target``.

    Any primary key, increment column, unique constraint or WITHOUT ROWID
    change, any changed column, and any new column ``ADD COLUMN`` cannot
    create forces a full rebuild. Otherwise columns are added and dropped
    in place and indexes and triggers are reconciled by name.

    Raises:
        SchemaDefinitionError: If ``target`` is invalid.
    """
    ddl.validate_table(table_name, target)

    reasons = rebuild_reasons(existing, target)
    if reasons:
        entries = restore_entries(table_name, existing, target, fallback)
        return TableDiff(
            table=table_name,
            action=TableAction.REBUILD,
            reasons=reasons,
            dropped_indexes=sorted(existing.indexes),
            dropped_triggers=sorted(existing.triggers),
            statements=ddl.rebuild_table(table_name, entries, target),
        )

    target_indexes = _target_index_names(table_name, target)
    target_triggers = _target_trigger_names(table_name, target)
    dropped_indexes = sorted(
        name for name, columns in existing.indexes.items()
        if target_indexes.get(name) != columns
    )
    dropped_triggers = sorted(set(existing.triggers) - target_triggers)

    statements: list[str] = []
    for name, col in target.columns.items():
        if name not in existing.columns:
            statements.append(ddl.add_column(table_name, name, col))
    for name in existing.columns:
        if name not in target.columns:
            statements.append(ddl.drop_column(table_name, name))
    for name, key in target_indexes.items():
        if existing.indexes.get(name) != key:
            statements.append(ddl.create_index(table_name, key))
    if target_triggers - set(existing.triggers):
        statements.extend(ddl.trigger_statements(table_name, target))

    diff = TableDiff(
        table=table_name,
        action=TableAction.ALTER,
        dropped_indexes=dropped_indexes,
        dropped_triggers=dropped_triggers,
        statements=statements,
    )
    if not diff.has_changes:
        diff.action = TableAction.UNCHANGED
    return diff


# ------------------------------------------------------------------
# Schema diff
# ------------------------------------------------------------------


def _truncate_set(
    truncate_if_exists: bool | list[str], existing: ParsedSchema
) -> set[str]:
    if isinstance(truncate_if_exists, bool):
        return set(existing.tables) if truncate_if_exists else set()
    return set(truncate_if_exists)


def diff_schema(
    existing: ParsedSchema,
    target: Schema,
    truncate_if_exists: bool | list[str] = False,
    fallback: FallbackFn = default_fallback,
) -> list[TableDiff]:
    """Plan every table: existing tables by name, then new tables in order.

    Every target table is validated before any table is diffed.

    Raises:
        SchemaDefinitionError: If any target table is invalid.
    """
    for table_name, table in target.items():
        ddl.validate_table(table_name, table)
    ddl.validate_index_names(target)

    truncate = _truncate_set(truncate_if_exists, existing)
    diffs: list[TableDiff] = []

    for table_name in sorted(existing.tables):
        existing_table = existing.tables[table_name]
        if table_name not in target:
            diffs.append(TableDiff(
                table=table_name,
                action=TableAction.DROP,
                dropped_indexes=sorted(existing_table.indexes),
                dropped_triggers=sorted(existing_table.triggers),
                statements=[ddl.drop_table(table_name)],
            ))
        elif table_name in truncate:
            diffs.append(TableDiff(
                table=table_name,
                action=TableAction.TRUNCATE,
                dropped_indexes=sorted(existing_table.indexes),
                dropped_triggers=sorted(existing_table.triggers),
                statements=[
                    ddl.drop_table(table_name),
                    *ddl.create_table_statements(table_name, target[table_name]),
                ],
            ))
        else:
            diffs.append(
                diff_table(table_name, existing_table, target[table_name], fallback)
            )

    for table_name, table in target.items():
        if table_name not in existing.tables:
            diffs.append(TableDiff(
                table=table_name,
                action=TableAction.CREATE,
                statements=ddl.create_table_statements(table_name, table),
            ))

    return diffs


_DEBUG_MESSAGES = {
    TableAction.CREATE: 'Create table "{}"',
    TableAction.DROP: 'Delete table "{}"',
    TableAction.TRUNCATE: 'Update table "{}" and truncate',
    TableAction.ALTER: 'Update table "{}"',
    TableAction.REBUILD: 'Rebuild table "{}"',
}


def generate_sync_sql(
    existing: ParsedSchema,
    target: Schema,
    truncate_if_exists: bool | list[str] = False,
    fallback: FallbackFn = default_fallback,
    debug: Callable[[str], None] | None = None,
) -> list[str]:
    """Generate the ordered statement list for one sync run.

    Order:
        1. ``DROP INDEX`` for every index that goes away, sorted by name
        2. ``DROP TRIGGER`` for every trigger that goes away, sorted by name
        3. table drops, truncates, rebuilds and alters, by table name
        4. new tables with their indexes and triggers, in target order

    Unchanged tables contribute nothing, so syncing an already synced
    database yields an empty list.

    Args:
        existing: Introspected schema.
        target: Target schema.
        truncate_if_exists: ``True`` to drop and recreate every existing
            target table empty, or the names of the tables to treat so.
        fallback: Fallback literal for rows that would violate a new
            ``NOT NULL`` constraint.
        debug: Receives one line per planned table operation.

    Raises:
        SchemaDefinitionError: If any target table is invalid.
    """
    diffs = diff_schema(existing, target, truncate_if_exists, fallback)

    dropped_indexes = sorted(name for diff in diffs for name in diff.dropped_indexes)
    dropped_triggers = sorted(name for diff in diffs for name in diff.dropped_triggers)

    statements: list[str] = []
    for name in dropped_indexes:
        if debug:
            debug(f'Drop index "{name}"')
        statements.append(ddl.drop_index(name))
    for name in dropped_triggers:
        if debug:
            debug(f'Drop trigger "{name}"')
        statements.append(ddl.drop_trigger(name))

    for diff in diffs:
        if not diff.statements:
            continue
        if debug:
            message = _DEBUG_MESSAGES[diff.action].format(diff.table)
            if diff.reasons:
                message += f" ({'; '.join(diff.reasons)})"
            debug(message)
        statements.extend(diff.statements)
    return statements
