"""Tests for SQL statement rendering."""

from datetime import date, datetime

import pytest

from sqlite_schema.schema import ddl
from sqlite_schema.schema.ddl import RestoreEntry, SchemaDefinitionError
from sqlite_schema.schema.define import column, define_table, raw
from sqlite_schema.schema.models import ColumnDefinition, DataType, PhysicalType


@pytest.fixture
def test_table():
    """Table with increments, object default, not-null boolean and timestamps."""
    return define_table(
        {
            "id": column.increments(),
            "person": column.object(default_value={"name": "test"}),
            "gender": column.boolean(not_null=True),
        },
        index=["person", ["id", "gender"]],
        create_at=True,
        update_at=True,
    )


# ------------------------------------------------------------------
# Literals
# ------------------------------------------------------------------


class TestLiterals:
    """Identifier quoting and default literal rendering."""

    def test_quote_identifier_escapes_quotes(self):
        """Embedded double quotes are doubled."""
        assert ddl.quote_identifier("plain") == '"plain"'
        assert ddl.quote_identifier('we"ird') == '"we""ird"'

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("abc", "'abc'"),
            ("it's", "'it''s'"),
            (True, "1"),
            (False, "0"),
            (0, "0"),
            (-3, "-3"),
            (1.5, "1.5"),
            ({"name": "test"}, "'{\"name\":\"test\"}'"),
            ([1, 2], "'[1,2]'"),
            (date(2024, 1, 2), "'2024-01-02'"),
            (datetime(2024, 1, 2, 3, 4, 5), "'2024-01-02T03:04:05'"),
            (b"\x01\xff", "X'01FF'"),
            (raw("(strftime('%s','now'))"), "(strftime('%s','now'))"),
        ],
    )
    def test_render_default(self, value, expected):
        """Each value kind renders to its SQL literal."""
        assert ddl.render_default(value) == expected

    def test_unserializable_default_raises(self):
        """Values JSON cannot encode raise TypeError."""
        with pytest.raises(TypeError):
            ddl.render_default({"x": object()})


class TestTypeMapping:
    """Declared data type to physical type."""

    @pytest.mark.parametrize(
        "data_type, physical",
        [
            (DataType.FLOAT, PhysicalType.REAL),
            (DataType.INCREMENTS, PhysicalType.INTEGER),
            (DataType.BOOLEAN, PhysicalType.INTEGER),
            (DataType.INT, PhysicalType.INTEGER),
            (DataType.BLOB, PhysicalType.BLOB),
            (DataType.STRING, PhysicalType.TEXT),
            (DataType.DATE, PhysicalType.TEXT),
            (DataType.OBJECT, PhysicalType.TEXT),
        ],
    )
    def test_physical_type(self, data_type, physical):
        """Every data type maps to its fixed storage type."""
        assert ddl.physical_type(data_type) is physical

    def test_timestamp_signature(self, test_table):
        """Timestamp columns render as TEXT DEFAULT CURRENT_TIMESTAMP."""
        assert ddl.column_signature(test_table.columns["updateAt"]) == (
            PhysicalType.TEXT, False, "CURRENT_TIMESTAMP",
        )


# ------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------


class TestCreateTable:
    """CREATE TABLE rendering."""

    def test_full_table(self, test_table):
        """Columns are comma-joined and increments suppresses PRIMARY KEY."""
        assert ddl.create_table("test", test_table) == (
            'CREATE TABLE IF NOT EXISTS "test" ('
            '"id" INTEGER PRIMARY KEY AUTOINCREMENT,'
            '"person" TEXT DEFAULT \'{"name":"test"}\','
            '"gender" INTEGER NOT NULL,'
            '"createAt" TEXT DEFAULT CURRENT_TIMESTAMP,'
            '"updateAt" TEXT DEFAULT CURRENT_TIMESTAMP);'
        )

    def test_composite_primary_key_and_unique(self):
        """Primary key and unique constraints are appended after columns."""
        table = define_table(
            {"a": column.int(), "b": column.string(), "c": column.string()},
            primary_key=["a", "b"],
            unique=["c", ["a", "c"]],
        )
        assert ddl.create_table("t", table) == (
            'CREATE TABLE IF NOT EXISTS "t" ("a" INTEGER,"b" TEXT,"c" TEXT,'
            'PRIMARY KEY ("a","b"),UNIQUE ("c"),UNIQUE ("a","c"));'
        )

    def test_primary_key_naming_increment_column(self):
        """A primary key equal to the increments column is not repeated."""
        table = define_table({"id": column.increments()}, primary_key="id")
        assert ddl.create_table("t", table) == (
            'CREATE TABLE IF NOT EXISTS "t" ("id" INTEGER PRIMARY KEY AUTOINCREMENT);'
        )

    def test_without_rowid(self):
        """WITHOUT ROWID follows the column list."""
        table = define_table(
            {"k": column.string(not_null=True), "v": column.blob()},
            primary_key="k",
            without_rowid=True,
        )
        assert ddl.create_table("kv", table) == (
            'CREATE TABLE IF NOT EXISTS "kv" ("k" TEXT NOT NULL,"v" BLOB,'
            'PRIMARY KEY ("k")) WITHOUT ROWID;'
        )

    def test_temp_table_has_no_if_not_exists(self, test_table):
        """if_not_exists=False renders a plain CREATE TABLE."""
        sql = ddl.create_table("_temp_test", test_table, if_not_exists=False)
        assert sql.startswith('CREATE TABLE "_temp_test" (')

    def test_not_null_with_default(self):
        """NOT NULL comes before DEFAULT."""
        col = column.int(default_value=3, not_null=True)
        assert ddl.render_column("n", col) == '"n" INTEGER NOT NULL DEFAULT 3'


class TestAlterStatements:
    """ALTER / DROP statements."""

    def test_add_column(self):
        """ADD COLUMN renders the full column definition."""
        col = ColumnDefinition(data_type=DataType.STRING)
        assert ddl.add_column("t", "name", col) == 'ALTER TABLE "t" ADD COLUMN "name" TEXT;'

    def test_add_column_with_default(self):
        """Defaults are kept on ADD COLUMN."""
        col = column.int(default_value=0, not_null=True)
        assert ddl.add_column("t", "n", col) == (
            'ALTER TABLE "t" ADD COLUMN "n" INTEGER NOT NULL DEFAULT 0;'
        )

    def test_drop_column(self):
        assert ddl.drop_column("t", "name") == 'ALTER TABLE "t" DROP COLUMN "name";'

    def test_drop_and_rename_table(self):
        assert ddl.drop_table("t") == 'DROP TABLE IF EXISTS "t";'
        assert ddl.rename_table("_temp_t", "t") == 'ALTER TABLE "_temp_t" RENAME TO "t";'

    def test_index_statements(self):
        """Index names join table and column names with underscores."""
        assert ddl.create_index("t", ["a", "b"]) == (
            'CREATE INDEX IF NOT EXISTS "idx_t_a_b" ON "t" ("a","b");'
        )
        assert ddl.drop_index("idx_t_a_b") == 'DROP INDEX IF EXISTS "idx_t_a_b";'

    def test_drop_trigger(self):
        assert ddl.drop_trigger("tgr_t_updateAt") == 'DROP TRIGGER IF EXISTS "tgr_t_updateAt";'


class TestUpdateTrigger:
    """AFTER UPDATE trigger rendering."""

    def test_keyed_by_increment_column(self, test_table):
        """Tables with increments key the trigger on that column."""
        assert ddl.trigger_statements("test", test_table) == [
            'CREATE TRIGGER IF NOT EXISTS "tgr_test_updateAt" AFTER UPDATE ON "test" '
            'BEGIN UPDATE "test" SET "updateAt" = CURRENT_TIMESTAMP '
            'WHERE "id" = NEW."id"; END;'
        ]

    def test_keyed_by_rowid(self):
        """Tables without increments key the trigger on rowid."""
        table = define_table({"name": column.string()}, update_at=True)
        assert ddl.trigger_statements("t", table) == [
            'CREATE TRIGGER IF NOT EXISTS "tgr_t_updateAt" AFTER UPDATE ON "t" '
            'BEGIN UPDATE "t" SET "updateAt" = CURRENT_TIMESTAMP '
            'WHERE rowid = NEW.rowid; END;'
        ]

    def test_without_rowid_keyed_by_primary_key(self):
        """WITHOUT ROWID tables key the trigger on all primary key columns."""
        table = define_table(
            {"a": column.int(not_null=True), "b": column.string(not_null=True)},
            primary_key=["a", "b"],
            update_at=True,
            without_rowid=True,
        )
        assert ddl.trigger_key(table) == ["a", "b"]
        assert 'WHERE "a" = NEW."a" AND "b" = NEW."b"; END;' in ddl.trigger_statements("t", table)[0]

    def test_no_trigger_without_update_column(self):
        """No update column, no trigger."""
        table = define_table({"name": column.string()}, create_at=True)
        assert ddl.trigger_statements("t", table) == []


# ------------------------------------------------------------------
# Rebuild
# ------------------------------------------------------------------


class TestRebuildTable:
    """The create-copy-drop-rename sequence."""

    def test_statement_order(self, test_table):
        """Temp table, copy, drop, rename, then indexes and trigger."""
        entries = [RestoreEntry("id", '"id"'), RestoreEntry("gender", 'IFNULL("gender",0)')]
        statements = ddl.rebuild_table("test", entries, test_table)

        assert statements[0].startswith('CREATE TABLE "_temp_test" (')
        assert statements[1] == (
            'INSERT INTO "_temp_test" ("id","gender") '
            'SELECT "id",IFNULL("gender",0) FROM "test";'
        )
        assert statements[2] == 'DROP TABLE IF EXISTS "test";'
        assert statements[3] == 'ALTER TABLE "_temp_test" RENAME TO "test";'
        assert statements[4] == 'CREATE INDEX IF NOT EXISTS "idx_test_person" ON "test" ("person");'
        assert statements[5] == (
            'CREATE INDEX IF NOT EXISTS "idx_test_id_gender" ON "test" ("id","gender");'
        )
        assert statements[6].startswith('CREATE TRIGGER IF NOT EXISTS "tgr_test_updateAt"')
        assert len(statements) == 7

    def test_no_copy_without_entries(self):
        """Nothing to restore means no INSERT statement."""
        table = define_table({"a": column.int()})
        assert ddl.rebuild_table("t", [], table) == [
            'CREATE TABLE "_temp_t" ("a" INTEGER);',
            'DROP TABLE IF EXISTS "t";',
            'ALTER TABLE "_temp_t" RENAME TO "t";',
        ]

    def test_create_table_statements(self, test_table):
        """Fresh creation emits table, indexes, then trigger."""
        statements = ddl.create_table_statements("test", test_table)
        assert statements[0].startswith('CREATE TABLE IF NOT EXISTS "test"')
        assert [s.split()[1] for s in statements] == ["TABLE", "INDEX", "INDEX", "TRIGGER"]


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


class TestValidateTable:
    """Definition errors."""

    def test_multiple_increments(self):
        """Two increments columns are rejected."""
        table = define_table({"a": column.increments(), "b": column.increments()})
        with pytest.raises(SchemaDefinitionError, match="multiple increments"):
            ddl.validate_table("t", table)

    def test_primary_key_conflicts_with_increments(self):
        """An explicit primary key other than the increments column is rejected."""
        table = define_table(
            {"id": column.increments(), "name": column.string()},
            primary_key=["id", "name"],
        )
        with pytest.raises(SchemaDefinitionError, match="conflicts"):
            ddl.validate_table("t", table)

    def test_primary_key_equal_to_increments_allowed(self):
        """Naming the increments column as primary key is accepted."""
        table = define_table({"id": column.increments()}, primary_key="id")
        ddl.validate_table("t", table)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"primary_key": "missing"},
            {"unique": ["missing"]},
            {"index": [["a", "missing"]]},
        ],
    )
    def test_unknown_key_columns(self, kwargs):
        """Keys must reference declared columns."""
        table = define_table({"a": column.int()}, **kwargs)
        with pytest.raises(SchemaDefinitionError, match="unknown column"):
            ddl.validate_table("t", table)

    def test_empty_index(self):
        """An empty index key is rejected."""
        table = define_table({"a": column.int()}, index=[[]])
        with pytest.raises(SchemaDefinitionError, match="empty index"):
            ddl.validate_table("t", table)

    def test_without_rowid_requires_primary_key(self):
        table = define_table({"a": column.int()}, without_rowid=True)
        with pytest.raises(SchemaDefinitionError, match="requires a primary key"):
            ddl.validate_table("t", table)

    def test_without_rowid_rejects_increments(self):
        table = define_table({"id": column.increments()}, without_rowid=True)
        with pytest.raises(SchemaDefinitionError, match="WITHOUT ROWID"):
            ddl.validate_table("t", table)

    def test_no_columns(self):
        with pytest.raises(SchemaDefinitionError, match="no columns"):
            ddl.validate_table("t", define_table({}))


class TestCatalogSignature:
    """Signatures as pragma_table_info reports them."""

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("(abs(random()) % 100)", "abs(random()) % 100"),
            ("(strftime('%s','now'))", "strftime('%s','now')"),
            ("((1))", "(1)"),
            ("(1) + (2)", "(1) + (2)"),
            ("('(')", "'('"),
            ("CURRENT_TIMESTAMP", "CURRENT_TIMESTAMP"),
            ("abs(-1)", "abs(-1)"),
        ],
    )
    def test_strip_outer_parens(self, sql, expected):
        assert ddl.strip_outer_parens(sql) == expected

    def test_without_rowid_primary_key_is_not_null(self):
        """WITHOUT ROWID key columns are reported NOT NULL."""
        table = define_table(
            {"k": column.string(), "v": column.int()},
            primary_key="k",
            without_rowid=True,
        )
        assert ddl.catalog_signature(table, "k") == (PhysicalType.TEXT, True, None)
        assert ddl.catalog_signature(table, "v") == (PhysicalType.INTEGER, False, None)

    def test_rowid_primary_key_keeps_declared_nullability(self):
        table = define_table({"k": column.string()}, primary_key="k")
        assert ddl.catalog_signature(table, "k") == (PhysicalType.TEXT, False, None)

    def test_raw_default_loses_outer_parens(self):
        """The rendered column keeps the parentheses, the signature does not."""
        table = define_table({"s": column.float(default_value=raw("(abs(random()) % 100)"))})
        assert ddl.render_column("s", table.columns["s"]) == '"s" REAL DEFAULT (abs(random()) % 100)'
        assert ddl.catalog_signature(table, "s") == (PhysicalType.REAL, False, "abs(random()) % 100")

    def test_string_default_untouched(self):
        """Quoted literals that look parenthesized are not expressions."""
        table = define_table({"s": column.string(default_value="(x)")})
        assert ddl.catalog_signature(table, "s")[2] == "'(x)'"


class TestValidateIndexNames:
    """Index names must be unique across the schema."""

    def test_collision_across_tables(self):
        """Table a_b on c and table a on (b, c) both render idx_a_b_c."""
        schema = {
            "a_b": define_table({"c": column.int()}, index=["c"]),
            "a": define_table({"b": column.int(), "c": column.int()}, index=[["b", "c"]]),
        }
        with pytest.raises(SchemaDefinitionError, match="idx_a_b_c"):
            ddl.validate_index_names(schema)

    def test_duplicate_within_table(self):
        schema = {"t": define_table({"a": column.int()}, index=["a", ["a"]])}
        with pytest.raises(SchemaDefinitionError, match="idx_t_a"):
            ddl.validate_index_names(schema)

    def test_distinct_names_pass(self):
        schema = {
            "a": define_table({"b": column.int(), "c": column.int()}, index=["b", ["b", "c"]]),
            "d": define_table({"b": column.int()}, index=["b"]),
        }
        ddl.validate_index_names(schema)
