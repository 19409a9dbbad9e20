"""Tests for storage backend selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from periodic.core.errors import ConfigurationError, ErrorCode
from periodic.core.models.app import AppConfig, DatabaseConfig, StorageBackend
from periodic.core.repositories import (
    InMemoryScheduledItemRepository,
    SqlScheduledItemRepository,
    build_repositories,
)

pytestmark = pytest.mark.unit


def test_memory_backend() -> None:
    repos = build_repositories(AppConfig())

    assert isinstance(repos.scheduled_items, InMemoryScheduledItemRepository)
    assert repos.on_open is None


@pytest.mark.asyncio
async def test_database_backend(tmp_path: Path) -> None:
    config = AppConfig(
        backend=StorageBackend.DATABASE,
        database=DatabaseConfig(database_url=f'sqlite+aiosqlite:///{tmp_path / "p.db"}'),
    )

    repos = build_repositories(config)
    try:
        assert isinstance(repos.scheduled_items, SqlScheduledItemRepository)
        assert repos.on_open is not None
    finally:
        await repos.close()


def test_database_backend_without_settings() -> None:
    config = AppConfig.model_construct(backend=StorageBackend.DATABASE, database=None)

    with pytest.raises(ConfigurationError) as exc_info:
        build_repositories(config)

    assert exc_info.value.code == ErrorCode.CONFIG_INVALID_BACKEND
