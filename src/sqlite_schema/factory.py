"""Database client factory.

Supports two configuration modes:
1. Profile mode (db.toml): named SQLite databases with per-profile pragmas
2. Direct mode (``database_url`` argument or ``<PREFIX>DATABASE_URL`` env var)

Profile resolution order: explicit name, ``<PREFIX>DB_PROFILE`` env var,
``default_profile`` in db.toml.
"""

import logging
import os
from pathlib import Path

from sqlite_schema.adapters.sqlite import AsyncSqliteAdapter
from sqlite_schema.config.loader import load_db_config
from sqlite_schema.config.models import DatabaseConfig, DatabaseProfile

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> str:
    """Get active profile name.

    Priority:
    1. ``profile_name`` argument
    2. ``{env_prefix}DB_PROFILE`` env var
    3. ``default_profile`` from db.toml
    4. Raise ProfileNotFoundError

    Args:
        profile_name: Explicit profile name.
        env_prefix: Prefix for environment variable lookup
            (e.g. ``"APP_"`` reads ``APP_DB_PROFILE``).
        config: Loaded config, used for ``default_profile``.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    if profile_name:
        return profile_name

    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    if config is not None and config.default_profile:
        return config.default_profile

    available = ", ".join(config.profiles) if config else "(no db.toml loaded)"
    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Pass --profile, set {env_var}, or set default_profile in db.toml.\n"
        f"Available profiles: {available}"
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        FileNotFoundError: If db.toml doesn't exist
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    config = load_db_config(config_path)
    name = get_active_profile_name(profile_name, env_prefix, config)

    if name not in config.profiles:
        raise KeyError(
            f"Profile '{name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return name, config.profiles[name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve a profile URL, expanding environment variables and ``~``.

    Args:
        profile: Database profile from config

    Returns:
        URL or file path with variables expanded

    Example:
        >>> resolve_url(DatabaseProfile(url="~/data/app.db"))  # doctest: +SKIP
        '/home/me/data/app.db'
    """
    url = os.path.expandvars(profile.url)
    if "://" not in url:
        url = os.path.expanduser(url)
    return url


# ============================================================================
# Database Adapter Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> AsyncSqliteAdapter:
    """Create an ``AsyncSqliteAdapter``.

    Resolution order:
    1. ``database_url`` argument
    2. Profile from db.toml (see ``get_active_profile_name``)
    3. ``{env_prefix}DATABASE_URL`` env var when no db.toml exists

    Args:
        profile_name: Profile name from db.toml.
        database_url: Direct URL or file path, bypasses profiles.
        env_prefix: Prefix for environment variable lookups.
        config_path: Path to db.toml (default: ``./db.toml``).

    Returns:
        Configured adapter. Caller must ``await adapter.close()``.

    Raises:
        ProfileNotFoundError: If no database configuration found
        KeyError: If the selected profile is not in db.toml
    """
    if database_url:
        return AsyncSqliteAdapter(database_url)

    try:
        name, profile = get_active_profile(profile_name, env_prefix, config_path)
    except FileNotFoundError:
        env_url = os.environ.get(f"{env_prefix}DATABASE_URL")
        if env_url:
            logger.debug(f"No db.toml, using {env_prefix}DATABASE_URL")
            return AsyncSqliteAdapter(env_url)
        raise ProfileNotFoundError(
            "No database configuration found.\n"
            "Either:\n"
            "  1. Create db.toml with a [profiles.<name>] table\n"
            f"  2. Set {env_prefix}DATABASE_URL"
        ) from None

    logger.debug(f"Using database profile '{name}'")
    return AsyncSqliteAdapter(resolve_url(profile), pragmas=dict(profile.pragmas))
