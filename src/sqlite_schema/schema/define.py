"""Helpers for declaring target schemas.

Usage:
    from sqlite_schema.schema.define import column, define_table, raw

    users = define_table(
        {
            "id": column.increments(),
            "name": column.string(not_null=True, default_value="anonymous"),
            "profile": column.object(),
            "score": column.float(default_value=raw("(abs(random()) % 100)")),
        },
        index=["name"],
        create_at=True,
        update_at=True,
    )
    schema = {"users": users}
"""

from typing import Any

from sqlite_schema.schema.models import (
    ColumnDefinition,
    DataType,
    RawSQL,
    TableDefinition,
)


def raw(sql: str) -> RawSQL:
    """Wrap a SQL expression so it is inlined verbatim as a default value."""
    return RawSQL(sql=sql)


def _build(data_type: DataType, default_value: Any, not_null: bool) -> ColumnDefinition:
    return ColumnDefinition(
        data_type=data_type, default_value=default_value, not_null=not_null
    )


class ColumnFactory:
    """Column constructors, one per ``DataType``.

    Exposed as the module-level ``column`` instance.
    """

    @staticmethod
    def increments() -> ColumnDefinition:
        """``INTEGER PRIMARY KEY AUTOINCREMENT``."""
        return ColumnDefinition(data_type=DataType.INCREMENTS)

    @staticmethod
    def int(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        return _build(DataType.INT, default_value, not_null)

    @staticmethod
    def float(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        return _build(DataType.FLOAT, default_value, not_null)

    @staticmethod
    def string(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        return _build(DataType.STRING, default_value, not_null)

    @staticmethod
    def blob(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        return _build(DataType.BLOB, default_value, not_null)

    @staticmethod
    def boolean(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        """Stored as ``INTEGER`` (``1`` / ``0``)."""
        return _build(DataType.BOOLEAN, default_value, not_null)

    @staticmethod
    def date(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        """Stored as ISO-8601 ``TEXT``."""
        return _build(DataType.DATE, default_value, not_null)

    @staticmethod
    def object(default_value: Any = None, not_null: bool = False) -> ColumnDefinition:
        """Stored as JSON ``TEXT``."""
        return _build(DataType.OBJECT, default_value, not_null)


column = ColumnFactory()


def define_table(
    columns: dict[str, ColumnDefinition | dict[str, Any]],
    primary_key: str | list[str] | None = None,
    unique: list[str | list[str]] | None = None,
    index: list[str | list[str]] | None = None,
    create_at: bool | str = False,
    update_at: bool | str = False,
    soft_delete: bool | str = False,
    without_rowid: bool = False,
) -> TableDefinition:
    """Build a ``TableDefinition``.

    Args:
        columns: Column name to definition. Plain dicts are accepted
            (``{"data_type": "string", "not_null": True}``).
        primary_key: Primary key column or columns. Leave unset when the
            table has an ``increments`` column.
        unique: Unique constraints, each a column or list of columns.
        index: Indexes, each a column or list of columns.
        create_at: Add a creation-time column (``True`` for ``createAt``,
            or the column name).
        update_at: Add an update-time column kept current by an
            ``AFTER UPDATE`` trigger (``True`` for ``updateAt``).
        soft_delete: Add a soft-delete flag column (``True`` for
            ``isDeleted``).
        without_rowid: Create the table ``WITHOUT ROWID``.

    Returns:
        Validated ``TableDefinition`` with derived columns injected.
    """
    return TableDefinition(
        columns=dict(columns),
        primary_key=primary_key,
        unique=unique or [],
        index=index or [],
        create_at=create_at,
        update_at=update_at,
        soft_delete=soft_delete,
        without_rowid=without_rowid,
    )
