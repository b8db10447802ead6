"""CLI module for SQLite schema synchronization.

Provides commands for profile listing, database status, integrity
checks, and previewing or applying a schema sync.

Usage:
    sqlite-schema profiles
    sqlite-schema --profile local status
    sqlite-schema --database-url app.db check
    sqlite-schema plan --schema myapp.tables:SCHEMA
    sqlite-schema sync --schema myapp.tables:SCHEMA --confirm
    APP_DB_PROFILE=prod sqlite-schema --env-prefix APP_ sync --confirm --check-integrity

Commands:
    profiles  - List available profiles
    status    - Show schema version and tables of the active database
    check     - Run PRAGMA integrity_check
    plan      - Show the statements a sync would run
    sync      - Synchronize the database with the target schema
"""

import argparse
import asyncio
import importlib
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from sqlite_schema.adapters.sqlite import AsyncSqliteAdapter
from sqlite_schema.config.loader import ConfigError, load_db_config
from sqlite_schema.config.models import DatabaseConfig, SyncOptions
from sqlite_schema.factory import (
    ProfileNotFoundError,
    get_active_profile_name,
    get_adapter,
)
from sqlite_schema.pragma import check_integrity, get_db_version
from sqlite_schema.schema.comparator import (
    TableAction,
    default_fallback,
    diff_schema,
    generate_sync_sql,
)
from sqlite_schema.schema.ddl import SchemaDefinitionError
from sqlite_schema.schema.introspector import SchemaIntrospector
from sqlite_schema.schema.models import Schema, TableDefinition
from sqlite_schema.schema.sync import sync_tables

console = Console()

_ACTION_STYLES = {
    TableAction.CREATE: "[bold green]CREATE[/bold green]",
    TableAction.DROP: "[bold red]DROP[/bold red]",
    TableAction.TRUNCATE: "[bold red]TRUNCATE[/bold red]",
    TableAction.REBUILD: "[bold yellow]REBUILD[/bold yellow]",
    TableAction.ALTER: "[cyan]ALTER[/cyan]",
}


# ============================================================================
# Schema and config loading (CLI-internal helpers)
# ============================================================================


def load_schema(ref: str) -> Schema:
    """Import a target schema from a ``module:ATTR`` reference.

    Args:
        ref: Import path and attribute, e.g. ``"myapp.tables:SCHEMA"``.

    Returns:
        Dict mapping table name to ``TableDefinition``.

    Raises:
        ValueError: If the reference is malformed or the attribute is not
            a dict of ``TableDefinition``.
        ImportError: If the module cannot be imported.
    """
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Schema reference must look like 'module:ATTR', got '{ref}'")

    module = importlib.import_module(module_name)
    try:
        schema = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'") from None

    if not isinstance(schema, dict) or not all(
        isinstance(table, TableDefinition) for table in schema.values()
    ):
        raise ValueError(f"'{ref}' is not a dict of table name to TableDefinition")
    return schema


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    """Load db.toml, or return None when it does not exist."""
    try:
        return load_db_config(_config_path(args))
    except FileNotFoundError:
        return None


async def _open_adapter(args: argparse.Namespace) -> AsyncSqliteAdapter | None:
    try:
        return await get_adapter(
            profile_name=getattr(args, "profile", None),
            database_url=getattr(args, "database_url", None),
            env_prefix=getattr(args, "env_prefix", ""),
            config_path=_config_path(args),
        )
    except (ProfileNotFoundError, KeyError, ConfigError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _resolve_schema(
    args: argparse.Namespace, config: DatabaseConfig | None
) -> Schema | None:
    ref = getattr(args, "schema", None) or (config.schema_ref if config else None)
    if not ref:
        console.print(
            "[red]Error: no target schema.[/red] "
            "[dim]Pass[/dim] [cyan]--schema module:ATTR[/cyan] "
            "[dim]or set[/dim] [cyan]\\[schema] ref[/cyan] [dim]in db.toml.[/dim]"
        )
        return None
    try:
        return load_schema(ref)
    except (ImportError, ValueError) as e:
        console.print(f"[red]Error loading schema: {e}[/red]")
        return None


def _sync_options(
    args: argparse.Namespace, config: DatabaseConfig | None
) -> SyncOptions:
    """Merge the [sync] section of db.toml with command line flags."""
    options = config.sync.model_copy() if config else SyncOptions()
    truncate = getattr(args, "truncate", None)
    if truncate is not None:
        options.truncate_if_exists = truncate or True
    if getattr(args, "check_integrity", False):
        options.check_integrity = True
    return options


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_status(args: argparse.Namespace) -> int:
    """Async implementation for status command.

    Returns:
        0 on success, 1 if the database cannot be opened.
    """
    adapter = await _open_adapter(args)
    if adapter is None:
        return 1

    try:
        version = await get_db_version(adapter)
        columns = await SchemaIntrospector(adapter).get_column_names()
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    finally:
        await adapter.close()

    info = Table(title="Database Status", show_header=False)
    info.add_column("Key", style="dim")
    info.add_column("Value")
    info.add_row("Database", adapter.database_url)
    info.add_row("Schema version", str(version))
    info.add_row("Tables", str(len(columns)))
    console.print(info)

    if columns:
        tables = Table(show_header=True, header_style="bold")
        tables.add_column("Table")
        tables.add_column("Columns")
        for name, cols in columns.items():
            tables.add_row(name, ", ".join(cols))
        console.print(tables)

    return 0


async def _async_check(args: argparse.Namespace) -> int:
    """Async implementation for check command.

    Returns:
        0 if the integrity check passes, 1 otherwise.
    """
    adapter = await _open_adapter(args)
    if adapter is None:
        return 1

    try:
        ok = await check_integrity(adapter)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    finally:
        await adapter.close()

    if ok:
        console.print("[bold green]v[/bold green] Integrity check passed")
        return 0
    console.print("[bold red]x[/bold red] Integrity check failed: db file maybe corrupted")
    return 1


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Prints a per-table summary and the statement list in execution
    order without executing anything.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    schema = _resolve_schema(args, config)
    if schema is None:
        return 1

    adapter = await _open_adapter(args)
    if adapter is None:
        return 1

    options = _sync_options(args, config)
    try:
        existing = await SchemaIntrospector(adapter).introspect(
            options.exclude_table_prefix
        )
        fallback = options.fallback or default_fallback
        diffs = diff_schema(existing, schema, options.truncate_if_exists, fallback)
        statements = generate_sync_sql(
            existing, schema, options.truncate_if_exists, fallback
        )
    except SchemaDefinitionError as e:
        console.print(f"[red]Invalid schema: {e}[/red]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    finally:
        await adapter.close()

    changed = [d for d in diffs if d.has_changes]
    if not changed:
        console.print("[bold green]v[/bold green] Schema is up to date - nothing to do")
        return 0

    summary = Table(title="Schema Changes", show_header=True, header_style="bold")
    summary.add_column("Table")
    summary.add_column("Action")
    summary.add_column("Reason", style="dim")
    for diff in changed:
        summary.add_row(diff.table, _ACTION_STYLES[diff.action], "; ".join(diff.reasons))
    console.print(summary)

    console.print()
    for sql in statements:
        console.print(sql, markup=False, highlight=False)
    return 0


async def _async_sync(args: argparse.Namespace) -> int:
    """Async implementation for sync command.

    Without ``--confirm`` this behaves like ``plan``.

    Returns:
        0 on success, 1 on failure.
    """
    if not getattr(args, "confirm", False):
        code = await _async_plan(args)
        if code == 0:
            console.print(
                "\n[yellow]Dry run.[/yellow] [dim]Re-run with[/dim] "
                "[cyan]--confirm[/cyan] [dim]to apply.[/dim]"
            )
        return code

    config = _load_config(args)
    schema = _resolve_schema(args, config)
    if schema is None:
        return 1

    adapter = await _open_adapter(args)
    if adapter is None:
        return 1

    console.print(f"Syncing schema for {adapter.database_url}...", style="dim")

    try:
        result = await sync_tables(adapter, schema, _sync_options(args, config))
    finally:
        await adapter.close()

    if result.ready:
        console.print()
        if result.skipped:
            console.print("[bold green]v[/bold green] Schema version is current - sync skipped")
        elif result.statements:
            console.print(
                f"[bold green]v[/bold green] Applied {len(result.statements)} statements"
            )
        else:
            console.print("[bold green]v[/bold green] Schema is up to date - nothing to do")
        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] Sync failed: {result.error}")
    if result.failed_statement:
        console.print("  Failed statement:", style="dim")
        console.print(f"  {result.failed_statement}", markup=False, highlight=False)
    console.print("  [dim]All changes were rolled back.[/dim]")
    return 1


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found or invalid.
    """
    try:
        config = load_db_config(_config_path(args))
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(
            getattr(args, "profile", None), getattr(args, "env_prefix", ""), config
        )
    except ProfileNotFoundError:
        current = None

    table = Table(
        title="Database Profiles", show_header=True, header_style="bold"
    )
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("URL")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.url,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show schema version and tables. Wraps ``_async_status``."""
    return asyncio.run(_async_status(args))


def cmd_check(args: argparse.Namespace) -> int:
    """Run the integrity check. Wraps ``_async_check``."""
    return asyncio.run(_async_check(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Show planned sync statements. Wraps ``_async_plan``."""
    return asyncio.run(_async_plan(args))


def cmd_sync(args: argparse.Namespace) -> int:
    """Synchronize the schema.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_sync(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlite-schema",
        description="Declarative schema synchronization for SQLite",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile name from db.toml",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLite URL or file path, bypasses profiles",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # status command
    p_status = subparsers.add_parser(
        "status",
        help="Show schema version and tables",
    )
    p_status.set_defaults(func=cmd_status)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Run PRAGMA integrity_check",
    )
    p_check.set_defaults(func=cmd_check)

    # plan and sync share schema selection options
    for name, help_text, func in (
        ("plan", "Show the statements a sync would run", cmd_plan),
        ("sync", "Synchronize the database with the target schema", cmd_sync),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--schema",
            default=None,
            help="Target schema as module:ATTR (default: [schema] ref in db.toml)",
        )
        sub.add_argument(
            "--truncate",
            nargs="*",
            default=None,
            metavar="TABLE",
            help="Drop and recreate these tables empty (all tables if none given)",
        )
        sub.set_defaults(func=func)
        if name == "sync":
            sub.add_argument(
                "--confirm",
                action="store_true",
                help="Apply the changes (otherwise only show the plan)",
            )
            sub.add_argument(
                "--check-integrity",
                action="store_true",
                help="Run PRAGMA integrity_check before syncing",
            )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
