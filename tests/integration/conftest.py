"""Integration test fixtures: SQL repositories on a throwaway SQLite database."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from periodic.core.models.app import DatabaseConfig
from periodic.core.repositories.base import Repositories
from periodic.core.repositories.sql import build_sql_repositories

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_config(tmp_path: Path) -> DatabaseConfig:
    """SQLite database in the test's temporary directory."""
    return DatabaseConfig(database_url=f'sqlite+aiosqlite:///{tmp_path / "periodic.db"}')


@pytest_asyncio.fixture
async def repositories(db_config: DatabaseConfig) -> AsyncGenerator[Repositories, None]:
    """Opened SQL repositories with a fixed clock."""
    repos = build_sql_repositories(db_config, clock=lambda: NOW)
    await repos.open()
    yield repos
    await repos.close()
