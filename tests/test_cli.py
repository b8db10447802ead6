"""Tests for the sqlite-schema CLI."""

import sqlite3
import textwrap
import uuid
from pathlib import Path
from unittest.mock import patch

import pytest

from sqlite_schema.cli import build_parser, load_schema, main

SCHEMA_SOURCE = textwrap.dedent("""\
    from sqlite_schema import column, define_table

    SCHEMA = {
        "users": define_table(
            {"id": column.increments(), "name": column.string(not_null=True, default_value="")},
            index=["name"],
            update_at=True,
        ),
    }
    BROKEN = {
        "bad": define_table({"a": column.increments(), "b": column.increments()}),
    }
    NOT_A_SCHEMA = 42

    BEFORE = {
        "alpha": define_table({"a": column.string()}),
        "beta": define_table({"b": column.string(), "c": column.string()}, index=["c"]),
    }
    AFTER = {
        "alpha": define_table({"a": column.string(), "x": column.string()}),
        "beta": define_table({"b": column.string(), "c": column.string()}),
    }
""")


@pytest.fixture
def schema_ref(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Write a schema module importable under a unique name."""
    module_name = f"cli_schema_{uuid.uuid4().hex}"
    (tmp_path / f"{module_name}.py").write_text(SCHEMA_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return f"{module_name}:SCHEMA"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cli.db"


def _tables(db_path: Path) -> list[str]:
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
    return [r[0] for r in rows]


# ============================================================================
# Parser
# ============================================================================


class TestParser:
    """Argument parsing."""

    def test_prog_name(self):
        assert build_parser().prog == "sqlite-schema"

    def test_global_options(self):
        args = build_parser().parse_args(
            ["--env-prefix", "APP_", "-p", "local", "--config", "x.toml", "status"]
        )
        assert args.env_prefix == "APP_"
        assert args.profile == "local"
        assert args.config == "x.toml"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_truncate_forms(self):
        parser = build_parser()
        assert parser.parse_args(["plan"]).truncate is None
        assert parser.parse_args(["plan", "--truncate"]).truncate == []
        assert parser.parse_args(["plan", "--truncate", "a", "b"]).truncate == ["a", "b"]

    def test_confirm_only_on_sync(self):
        parser = build_parser()
        assert parser.parse_args(["sync", "--confirm"]).confirm is True
        with pytest.raises(SystemExit):
            parser.parse_args(["plan", "--confirm"])

    def test_commands_wrap_asyncio_run(self):
        with patch("sqlite_schema.cli.asyncio.run", return_value=0) as mock_run:
            assert main(["--database-url", "x.db", "check"]) == 0
        mock_run.assert_called_once()
        mock_run.call_args.args[0].close()


# ============================================================================
# Schema loading
# ============================================================================


class TestLoadSchema:
    def test_loads_dict_of_tables(self, schema_ref):
        assert list(load_schema(schema_ref)) == ["users"]

    def test_malformed_ref(self):
        with pytest.raises(ValueError, match="module:ATTR"):
            load_schema("no_colon_here")

    def test_missing_attribute(self, schema_ref):
        module = schema_ref.split(":")[0]
        with pytest.raises(ValueError, match="no attribute"):
            load_schema(f"{module}:MISSING")

    def test_not_a_schema(self, schema_ref):
        module = schema_ref.split(":")[0]
        with pytest.raises(ValueError, match="not a dict"):
            load_schema(f"{module}:NOT_A_SCHEMA")

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_schema("definitely_not_a_module_xyz:SCHEMA")


# ============================================================================
# Commands
# ============================================================================


class TestCommands:
    """Commands run end to end against a file database."""

    def test_sync_without_confirm_is_dry_run(self, schema_ref, db_path, capsys):
        code = main(["--database-url", str(db_path), "sync", "--schema", schema_ref])

        assert code == 0
        assert "Dry run" in capsys.readouterr().out
        assert _tables(db_path) == []

    def test_plan_prints_statements(self, schema_ref, db_path, capsys):
        code = main(["--database-url", str(db_path), "plan", "--schema", schema_ref])

        out = capsys.readouterr().out
        assert code == 0
        assert "CREATE" in out
        assert "users" in out
        assert _tables(db_path) == []

    def test_plan_lists_statements_in_execution_order(self, schema_ref, db_path, capsys):
        """Index drops of later tables print before earlier tables' changes."""
        module = schema_ref.split(":")[0]
        main(["--database-url", str(db_path), "sync", "--schema", f"{module}:BEFORE", "--confirm"])
        capsys.readouterr()

        code = main(["--database-url", str(db_path), "plan", "--schema", f"{module}:AFTER"])

        out = capsys.readouterr().out
        assert code == 0
        assert out.index('DROP INDEX IF EXISTS "idx_beta_c";') < out.index(
            'ALTER TABLE "alpha" ADD COLUMN "x" TEXT;'
        )

    def test_sync_confirm_applies(self, schema_ref, db_path, capsys):
        code = main(["--database-url", str(db_path), "sync", "--schema", schema_ref, "--confirm"])

        assert code == 0
        assert "Applied" in capsys.readouterr().out
        assert _tables(db_path) == ["users"]

        code = main(["--database-url", str(db_path), "sync", "--schema", schema_ref, "--confirm"])
        assert code == 0
        assert "up to date" in capsys.readouterr().out

    def test_sync_invalid_schema_fails(self, schema_ref, db_path, capsys):
        broken = schema_ref.replace(":SCHEMA", ":BROKEN")
        code = main(["--database-url", str(db_path), "sync", "--schema", broken, "--confirm"])

        assert code == 1
        assert "Sync failed" in capsys.readouterr().out
        assert _tables(db_path) == []

    def test_plan_invalid_schema_fails(self, schema_ref, db_path, capsys):
        broken = schema_ref.replace(":SCHEMA", ":BROKEN")
        code = main(["--database-url", str(db_path), "plan", "--schema", broken])

        assert code == 1
        assert "Invalid schema" in capsys.readouterr().out

    def test_schema_from_config(self, schema_ref, tmp_path, db_path, monkeypatch):
        (tmp_path / "db.toml").write_text(textwrap.dedent(f"""\
            default_profile = "local"

            [profiles.local]
            url = "{db_path}"

            [schema]
            ref = "{schema_ref}"

            [sync.version]
            current = 2
        """))
        monkeypatch.chdir(tmp_path)

        assert main(["sync", "--confirm"]) == 0
        assert _tables(db_path) == ["users"]
        with sqlite3.connect(db_path) as conn:
            assert conn.execute("PRAGMA user_version").fetchone()[0] == 2

    def test_missing_schema(self, tmp_path, db_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        code = main(["--database-url", str(db_path), "plan"])

        assert code == 1
        assert "no target schema" in capsys.readouterr().out

    def test_status(self, schema_ref, db_path, capsys):
        main(["--database-url", str(db_path), "sync", "--schema", schema_ref, "--confirm"])
        capsys.readouterr()

        assert main(["--database-url", str(db_path), "status"]) == 0
        out = capsys.readouterr().out
        assert "Schema version" in out
        assert "users" in out

    def test_check(self, db_path, capsys):
        assert main(["--database-url", str(db_path), "check"]) == 0
        assert "Integrity check passed" in capsys.readouterr().out

    def test_profiles(self, tmp_path, capsys):
        config = tmp_path / "db.toml"
        config.write_text(textwrap.dedent("""\
            default_profile = "dev"

            [profiles.dev]
            url = "dev.db"
            description = "Development"

            [profiles.prod]
            url = "/srv/prod.db"
        """))

        assert main(["--config", str(config), "profiles"]) == 0
        out = capsys.readouterr().out
        assert "dev" in out
        assert "prod" in out
        assert "active profile" in out

    def test_profiles_without_config(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.toml"), "profiles"]) == 1
        assert "Error" in capsys.readouterr().out

    def test_unknown_profile(self, tmp_path, capsys):
        config = tmp_path / "db.toml"
        config.write_text('[profiles.dev]\nurl = "dev.db"\n')

        assert main(["--config", str(config), "-p", "nope", "status"]) == 1
        assert "not found" in capsys.readouterr().out
