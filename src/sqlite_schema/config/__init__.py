"""Configuration management: profiles, TOML loading, and option models.

Usage:
    >>> from sqlite_schema.config import load_db_config, SyncOptions, VersionOptions
"""

from sqlite_schema.config.loader import ConfigError, load_db_config
from sqlite_schema.config.models import (
    DatabaseConfig,
    DatabaseProfile,
    SyncOptions,
    VersionOptions,
)

__all__ = [
    "load_db_config",
    "ConfigError",
    "DatabaseConfig",
    "DatabaseProfile",
    "SyncOptions",
    "VersionOptions",
]
