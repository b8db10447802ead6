"""Shared fixtures: a real SQLite database file per test."""

from pathlib import Path

import pytest_asyncio

from sqlite_schema.adapters.sqlite import AsyncSqliteAdapter


@pytest_asyncio.fixture
async def adapter(tmp_path: Path):
    """AsyncSqliteAdapter on a fresh database file, closed after the test."""
    db = AsyncSqliteAdapter(str(tmp_path / "test.db"))
    yield db
    await db.close()
