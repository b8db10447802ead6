"""Configuration loading from db.toml.

Example db.toml:

    default_profile = "local"

    [profiles.local]
    url = "sqlite:///app.db"
    description = "Local development database"

    [profiles.local.pragmas]
    journal_mode = "WAL"
    foreign_keys = "ON"

    [schema]
    ref = "myapp.tables:SCHEMA"

    [sync]
    exclude_table_prefix = ["_litestream_"]
    log = true

    [sync.version]
    current = 3
    skip_sync_when_same = true
"""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from sqlite_schema.config.models import DatabaseConfig, DatabaseProfile, SyncOptions


class ConfigError(ValueError):
    """Raised when db.toml content is invalid."""


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ``db.toml`` in the current
            working directory)

    Returns:
        DatabaseConfig with all profiles and sync settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create a db.toml with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        # Parse profiles
        profiles = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)

        # Parse schema settings
        schema_settings = data.get("schema", {})

        config = DatabaseConfig(
            profiles=profiles,
            default_profile=data.get("default_profile"),
            schema_ref=schema_settings.get("ref"),
            sync=SyncOptions(**data.get("sync", {})),
        )
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid database config in {config_path}: {e}") from e

    if config.default_profile and config.default_profile not in config.profiles:
        raise ConfigError(
            f"default_profile '{config.default_profile}' is not defined in {config_path}"
        )
    return config
